"""SoundBytes — social feed backend for short audio posts tied to musical tracks."""
