# ==========================================
# apps/cafes/models.py
# ==========================================

from django.db import models
import uuid


class Cafe(models.Model):
    """Café directory entry; visits reference it by id only."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    address = models.CharField(max_length=200)
    image_url = models.URLField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'cafes'
        ordering = ['name']

    def __str__(self):
        return self.name
