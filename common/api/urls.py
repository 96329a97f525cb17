from django.urls import re_path
from .views import StatsAPIView

urlpatterns = [
    re_path(r"^stats/?$", StatsAPIView.as_view(), name="stats"),
]
