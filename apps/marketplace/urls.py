"""URL patterns for the marketplace API."""
from django.db import transaction
from django.urls import path

from . import views

app_name = "marketplace"

# The lifecycle engine manages its own transaction for mutations
_engine_managed = transaction.non_atomic_requests

urlpatterns = [
    path("open/", views.OpenRequestsView.as_view(), name="open"),
    path("my/", views.MyRequestsView.as_view(), name="my"),
    path("incoming/", views.IncomingRequestsView.as_view(), name="incoming"),
    path("approvals/", views.ApprovalQueueView.as_view(), name="approvals"),
    path("dashboard/", views.DashboardView.as_view(), name="dashboard"),
    path("swappable/", views.SwappableShiftsView.as_view(), name="swappable"),
    path("requests/", _engine_managed(views.CreateRequestView.as_view()), name="create"),
    path("requests/<uuid:request_id>/claim/", _engine_managed(views.ClaimRequestView.as_view()), name="claim"),
    path("requests/<uuid:request_id>/respond/", _engine_managed(views.RespondToSwapView.as_view()), name="respond"),
    path("requests/<uuid:request_id>/decision/", _engine_managed(views.DecisionView.as_view()), name="decision"),
    path("requests/<uuid:request_id>/cancel/", _engine_managed(views.CancelRequestView.as_view()), name="cancel"),
]
