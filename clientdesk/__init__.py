"""ClientDesk - client, project and invoice management backend."""

__version__ = "1.0.0"
