"""Losses, training loop, learning-rate schedule and cross-validation."""
