"""Ingestion layer.

One adapter per tracking provider. Adapters fetch raw records and map them
into :class:`~trackhub.models.position.CanonicalPosition` objects.
"""

__all__: list[str] = []
