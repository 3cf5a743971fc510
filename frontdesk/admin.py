import json

from django.contrib import admin
from django.utils.html import format_html

from .models import StoredCollection


admin.site.site_header = "Hotel Front Desk Admin"
admin.site.site_title = "Hotel Front Desk Admin"
admin.site.index_title = "Stored front-desk data"


@admin.register(StoredCollection)
class StoredCollectionAdmin(admin.ModelAdmin):
    list_display = ("key", "records", "updated_at")
    search_fields = ("key",)
    ordering = ("key",)
    readonly_fields = ("key", "pretty_value", "created_at", "updated_at")
    exclude = ("value",)

    @admin.display(description="Records")
    def records(self, obj: StoredCollection) -> str:
        count = obj.record_count()
        return "—" if count is None else str(count)

    @admin.display(description="Value")
    def pretty_value(self, obj: StoredCollection) -> str:
        try:
            text = json.dumps(json.loads(obj.value), indent=2, ensure_ascii=False)
        except ValueError:
            text = obj.value
        return format_html('<pre style="white-space: pre-wrap; margin: 0;">{}</pre>', text)

    def has_add_permission(self, request):
        # Keys are created by the application on first write.
        return False

    def has_change_permission(self, request, obj=None):
        if not super().has_change_permission(request, obj):
            return False
        return request.method in ("GET", "HEAD", "OPTIONS")
