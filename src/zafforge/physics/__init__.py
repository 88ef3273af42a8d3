"""Physical sub-models plugged into the correction algorithms."""
