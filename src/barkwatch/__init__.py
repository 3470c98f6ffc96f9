"""barkwatch: bark monitoring and crate-training feedback."""

__version__ = "0.1.0"
