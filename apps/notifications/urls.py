"""URL patterns for the notifications app."""
from django.urls import path
from . import views

app_name = "notifications"

urlpatterns = [
    path("", views.NotificationListView.as_view(), name="list"),
    path("mark-read/", views.mark_read, name="mark_read"),
]
