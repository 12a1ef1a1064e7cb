"""Core building blocks of albumpy."""
