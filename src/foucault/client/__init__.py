"""Client side of the remote notebook protocol."""

from foucault.client.remote_notebook import RemoteNotebook

__all__ = ["RemoteNotebook"]
