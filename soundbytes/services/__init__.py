"""Services for SoundBytes."""
