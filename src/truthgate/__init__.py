"""truthgate: policy firewall for AI-generated code changes."""

__version__ = "0.1.0"
