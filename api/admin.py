from django.contrib import admin

from .models import (
    BookingBlock,
    Customer,
    Kiosk,
    Location,
    Resource,
    ScheduleLock,
    Service,
    Staff,
    StaffAvailability,
    StaffService,
)

admin.site.site_header = "Salon Scheduling Administration"
admin.site.site_title = "Salon Scheduling Admin"
admin.site.index_title = "Scheduling"


class ResourceInline(admin.TabularInline):
    model = Resource
    extra = 1


class StaffServiceInline(admin.TabularInline):
    model = StaffService
    extra = 1


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ('name', 'timezone', 'is_active', 'created_at')
    list_filter = ('is_active', 'timezone')
    search_fields = ('name', 'address')
    inlines = [ResourceInline]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'phone', 'created_at')
    search_fields = ('email', 'first_name', 'last_name', 'phone')


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ('name', 'duration_minutes', 'base_price', 'premium_fee_enabled', 'requires_dual_artist', 'is_active')
    list_filter = ('is_active', 'requires_dual_artist', 'premium_fee_enabled')
    search_fields = ('name',)


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ('display_name', 'role', 'location', 'user', 'is_active')
    list_filter = ('role', 'is_active', 'location')
    search_fields = ('display_name', 'user__email')
    inlines = [StaffServiceInline]


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ('name', 'type', 'capacity', 'location', 'is_active')
    list_filter = ('type', 'is_active', 'location')


@admin.register(StaffAvailability)
class StaffAvailabilityAdmin(admin.ModelAdmin):
    list_display = ('staff', 'date', 'start_time', 'end_time', 'is_available', 'reason')
    list_filter = ('is_available', 'date')
    search_fields = ('staff__display_name', 'reason')
    date_hierarchy = 'date'


@admin.register(BookingBlock)
class BookingBlockAdmin(admin.ModelAdmin):
    list_display = ('location', 'resource', 'start_time', 'end_time', 'reason', 'created_by')
    list_filter = ('location',)
    date_hierarchy = 'start_time'


@admin.register(Kiosk)
class KioskAdmin(admin.ModelAdmin):
    list_display = ('name', 'location', 'is_active', 'created_at')
    list_filter = ('is_active', 'location')
    readonly_fields = ('api_key',)


@admin.register(ScheduleLock)
class ScheduleLockAdmin(admin.ModelAdmin):
    list_display = ('location', 'date', 'created_at')
    list_filter = ('location',)
