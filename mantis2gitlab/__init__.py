"""Mantis to GitLab issue migration"""

__version__ = "1.0.0"
