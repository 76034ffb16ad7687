"""Input settings resolution and curve evaluation for Star Citizen control options."""

__version__ = "0.4.0-dev"
