from django.contrib import admin
from .models import Artwork, ArtworkSize


class ArtworkSizeInline(admin.TabularInline):
    model = ArtworkSize
    extra = 1
    readonly_fields = ['remaining']


@admin.register(Artwork)
class ArtworkAdmin(admin.ModelAdmin):
    list_display = ['title', 'slug', 'type', 'status', 'current_bid', 'auction_end', 'created_at']
    list_filter = ['type', 'status', 'created_at']
    search_fields = ['title', 'slug']
    prepopulated_fields = {'slug': ('title',)}
    ordering = ['-created_at']
    inlines = [ArtworkSizeInline]
    readonly_fields = ['current_bid', 'created_at', 'updated_at']


@admin.register(ArtworkSize)
class ArtworkSizeAdmin(admin.ModelAdmin):
    list_display = ['artwork', 'label', 'price', 'total_copies', 'remaining', 'updated_at']
    list_filter = ['label']
    search_fields = ['artwork__title', 'label']
    ordering = ['artwork', 'label']
    readonly_fields = ['remaining', 'updated_at']
