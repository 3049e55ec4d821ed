"""Version-negotiating gateway and content audit for a headless CMS."""

__version__ = "0.1.0"
