"""syncshell - sync status server for file manager shell integrations."""

__version__ = "0.1.0"
