"""Saron - retail operations backend with Dapic ERP sales synchronization."""

__version__ = "0.1.0"
