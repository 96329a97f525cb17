from django.urls import re_path
from .views import ProductAggregateAPIView, ProductGroupAPIView

urlpatterns = [
    re_path(r"^products/?$", ProductAggregateAPIView.as_view(), name="product-list"),
    re_path(r"^products/ai-group/?$", ProductGroupAPIView.as_view(), name="product-ai-group"),
]
