from django.db import models
from django.db.models import Q


class OrderRecord(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_ERROR = 'error'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_ERROR, 'Error'),
    ]

    shopify_order_id = models.CharField(max_length=64, db_index=True)
    package_id = models.CharField(max_length=64)
    customer_email = models.EmailField()
    customer_name = models.CharField(max_length=255, blank=True, default='')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    vendor_transaction_id = models.CharField(max_length=128, null=True, blank=True)
    fulfillment_details = models.JSONField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    superseded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['shopify_order_id', 'package_id'],
                condition=Q(superseded_at__isnull=True),
                name='unique_active_order_line',
            ),
        ]

    def __str__(self):
        return f"{self.shopify_order_id}/{self.package_id} ({self.status})"


class SyncLog(models.Model):
    STATUS_SUCCESS = 'success'
    STATUS_ERROR = 'error'

    sync_time = models.DateTimeField(auto_now_add=True)
    total = models.PositiveIntegerField(default=0)
    updated = models.PositiveIntegerField(default=0)
    deleted = models.PositiveIntegerField(default=0)
    errors = models.PositiveIntegerField(default=0)
    unchanged = models.PositiveIntegerField(default=0)
    details = models.JSONField(default=dict)
    status = models.CharField(max_length=16)
    error_message = models.TextField(null=True, blank=True)

    class Meta:
        db_table = 'sync_logs'
        ordering = ['-sync_time']

    def __str__(self):
        return f"sync {self.sync_time:%Y-%m-%d %H:%M} ({self.status})"
