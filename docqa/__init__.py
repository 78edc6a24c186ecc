"""docqa - answer questions from your own uploaded documents."""

__version__ = "0.1.0"
