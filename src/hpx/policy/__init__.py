"""Policy model, loaders and presets."""
