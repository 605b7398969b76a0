"""libbychat - terminal client for the Libby node-manager chatbot."""

__version__ = "0.1.0"
