from django.contrib import admin
from .models import Setting, AuditLog, AnalyticsEvent

admin.site.site_header = "Atelier Storefront Admin"
admin.site.site_title = "Atelier Admin Portal"
admin.site.index_title = "Orders, auctions and production"


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    ordering = ['key']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'object_reference', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__username', 'model_name', 'object_id', 'object_reference']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'object_reference',
                       'changes', 'ip_address', 'created_at']


@admin.register(AnalyticsEvent)
class AnalyticsEventAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'artwork', 'created_at']
    list_filter = ['event_type', 'created_at']
    ordering = ['-created_at']
    readonly_fields = ['event_type', 'artwork', 'meta', 'created_at']
