from django.contrib import admin

from .models import AuditLog, Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        'short_id', 'customer', 'location', 'service', 'staff', 'resource',
        'start_time', 'status', 'source', 'check_in_time',
    )
    list_filter = ('status', 'source', 'location', 'is_paid')
    search_fields = ('short_id', 'customer__email', 'customer__first_name', 'customer__last_name')
    date_hierarchy = 'start_time'
    raw_id_fields = ('customer', 'staff', 'secondary_staff', 'resource', 'check_in_staff', 'no_show_penalty_waived_by')
    readonly_fields = ('id', 'short_id', 'created_at', 'updated_at')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('entity_type', 'entity_id', 'action', 'actor', 'created_at')
    list_filter = ('entity_type', 'action')
    search_fields = ('entity_id', 'actor')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
