"""Katha Vault application package root.

Story publishing backend: readers browse and rate serialized fiction, an
admin authors stories and chapters. Persistence, identity and uploads are
reached through thin collaborators under ``db``, ``utils.identity`` and
``services.storage_service``.
"""

__all__ = [
]
