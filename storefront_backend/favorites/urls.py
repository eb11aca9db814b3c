from django.urls import path

from favorites.views import FavoriteDetailView, FavoriteListView, FavoriteToggleView

app_name = "favorites"

urlpatterns = [
    path("", FavoriteListView.as_view(), name="favorite-list"),
    path("toggle/", FavoriteToggleView.as_view(), name="favorite-toggle"),
    path("<uuid:product_id>/", FavoriteDetailView.as_view(), name="favorite-detail"),
]
