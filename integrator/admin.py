from django.contrib import admin, messages

from integrator.exceptions import LedgerError
from integrator.models import OrderRecord, SyncLog
from integrator.services import get_ledger


@admin.register(OrderRecord)
class OrderRecordAdmin(admin.ModelAdmin):
    list_display = ('shopify_order_id', 'package_id', 'customer_email', 'status',
                    'vendor_transaction_id', 'superseded_at', 'created_at')
    list_filter = ('status',)
    search_fields = ('shopify_order_id', 'package_id', 'customer_email')
    readonly_fields = [f.name for f in OrderRecord._meta.fields]
    actions = ['supersede_failed']

    @admin.action(description="Supersede failed records so they can be fulfilled again")
    def supersede_failed(self, request, queryset):
        for record in queryset:
            try:
                get_ledger().supersede(record.shopify_order_id, record.package_id)
            except LedgerError as exc:
                self.message_user(request, str(exc), messages.WARNING)

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SyncLog)
class SyncLogAdmin(admin.ModelAdmin):
    list_display = ('sync_time', 'status', 'total', 'updated', 'deleted', 'errors', 'unchanged')
    list_filter = ('status',)
    readonly_fields = [f.name for f in SyncLog._meta.fields]
