"""URL configuration for the pre-order tracker."""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("orders.api.urls")),
    path("api/", include("products.api.urls")),
    path("api/", include("common.api.urls")),
]
