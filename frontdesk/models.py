import json

from django.db import models


class StoredCollection(models.Model):
    """
    One persisted key of the front-desk state: the JSON text of a whole
    collection (or the theme preference), rewritten in full on every change.
    """

    key = models.CharField(max_length=64, unique=True)
    value = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self) -> str:  # pragma: no cover
        return self.key

    def record_count(self) -> int | None:
        """
        Number of records in the stored collection, or None when the value
        is not a JSON list.
        """
        try:
            payload = json.loads(self.value)
        except ValueError:
            return None
        return len(payload) if isinstance(payload, list) else None
