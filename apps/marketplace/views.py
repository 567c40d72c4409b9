"""
Marketplace JSON API.

View inventory:
  OpenRequestsView      → GET: open giveaways/pickups, optionally for one role
  MyRequestsView        → GET: requests the current user opened
  IncomingRequestsView  → GET: swaps waiting on the current user
  ApprovalQueueView     → GET: requests awaiting approval (can_edit_rota)
  DashboardView         → GET: badge counts
  SwappableShiftsView   → GET: owned, published shifts of a role in a month
  CreateRequestView     → POST: open a giveaway, pickup or swap
  ClaimRequestView      → POST: claim an open request
  RespondToSwapView     → POST: accept or decline a swap
  DecisionView          → POST: administrator approve/reject
  CancelRequestView     → POST: withdraw a request

Mutation views are wrapped in transaction.non_atomic_requests (see urls.py):
the lifecycle engine owns the transaction boundary, so a Conflict can be
reported without the whole request having been rolled back around it.

Errors are rendered as {"error": ..., "code": ...} with the status code of the
marketplace exception.
"""

import json
import logging

from django.http import HttpRequest, JsonResponse
from django.views import View

from apps.marketplace import selectors
from apps.marketplace.exceptions import InvalidState, MarketplaceError
from apps.marketplace.services import marketplace
from core.permissions import ApiLoginRequiredMixin, RotaEditorRequiredMixin, roles_with_permission

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request parsing helpers
# ---------------------------------------------------------------------------

def _payload(request: HttpRequest) -> dict:
    """Return the POST body as a dict, from JSON or form encoding."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except json.JSONDecodeError:
            raise InvalidState("Request body is not valid JSON.")
        if not isinstance(data, dict):
            raise InvalidState("Request body must be a JSON object.")
        return data
    return request.POST.dict()


def _flag(data: dict, key: str) -> bool:
    """Read a required boolean field."""
    if key not in data:
        raise InvalidState(f"'{key}' is required.")
    value = data[key]
    if isinstance(value, bool):
        return value
    if str(value).lower() in ("true", "1", "yes"):
        return True
    if str(value).lower() in ("false", "0", "no"):
        return False
    raise InvalidState(f"'{key}' must be true or false.")


def _int_param(request: HttpRequest, key: str, required: bool = False):
    value = request.GET.get(key, "").strip()
    if not value:
        if required:
            raise InvalidState(f"'{key}' is required.")
        return None
    if not value.isdigit():
        raise InvalidState(f"'{key}' must be an integer.")
    return int(value)


def _request_list(queryset) -> JsonResponse:
    return JsonResponse({"requests": [selectors.serialize_request(r) for r in queryset]})


def _request_detail(shift_request, status: int = 200) -> JsonResponse:
    fresh = selectors.request_queryset().get(pk=shift_request.pk)
    return JsonResponse(selectors.serialize_request(fresh), status=status)


class MarketplaceApiView(ApiLoginRequiredMixin, View):
    """Base view: authentication required, marketplace errors rendered as JSON."""

    def dispatch(self, request: HttpRequest, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except MarketplaceError as exc:
            if exc.status_code >= 500:
                logger.error("Marketplace failure on %s: %s", request.path, exc.message)
            return JsonResponse(exc.as_dict(), status=exc.status_code)


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

class OpenRequestsView(MarketplaceApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        return _request_list(selectors.open_requests(_int_param(request, "role_id")))


class MyRequestsView(MarketplaceApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        return _request_list(selectors.my_requests(request.user))


class IncomingRequestsView(MarketplaceApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        return _request_list(selectors.incoming_requests(request.user))


class ApprovalQueueView(RotaEditorRequiredMixin, MarketplaceApiView):
    """
    Requests awaiting a decision.

    With role_id, the approver capability is checked for that role. Without it,
    the queue covers every role the user can approve for.
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        role_id = _int_param(request, "role_id")
        if role_id is not None:
            role_ids = [role_id]
        else:
            role_ids = list(
                roles_with_permission(request.user, "can_edit_rota").values_list("pk", flat=True)
            )
        return _request_list(selectors.approval_queue(role_ids))


class DashboardView(MarketplaceApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        return JsonResponse(selectors.dashboard_counts(request.user))


class SwappableShiftsView(MarketplaceApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        role_id = _int_param(request, "role_id", required=True)
        year = _int_param(request, "year", required=True)
        month = _int_param(request, "month", required=True)
        if not 1 <= month <= 12:
            raise InvalidState("'month' must be between 1 and 12.")
        shifts = selectors.swappable_shifts(role_id, year, month)
        return JsonResponse({"shifts": [selectors.serialize_shift(s) for s in shifts]})


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

class CreateRequestView(MarketplaceApiView):
    """
    POST body:
      kind:               GIVEAWAY | PICKUP | SWAP
      source_shift_id:    UUID of the shift offered or picked up
      target_shift_id:    UUID of the shift wanted in exchange (SWAP)
      target_staff_id:    colleague the swap is addressed to (SWAP, optional)
      notes:              free text
      confirmed_staff_id: staff member acting through a shared login
    """

    def post(self, request: HttpRequest) -> JsonResponse:
        data = _payload(request)
        if not data.get("kind") or not data.get("source_shift_id"):
            raise InvalidState("'kind' and 'source_shift_id' are required.")

        shift_request = marketplace.create(
            request.user,
            data["kind"],
            data["source_shift_id"],
            target_shift_id=data.get("target_shift_id") or None,
            target_staff_id=data.get("target_staff_id") or None,
            notes=data.get("notes") or "",
            confirmed_staff=data.get("confirmed_staff_id") or None,
        )
        return _request_detail(shift_request, status=201)


class ClaimRequestView(MarketplaceApiView):

    def post(self, request: HttpRequest, request_id) -> JsonResponse:
        data = _payload(request)
        shift_request = marketplace.claim(
            request.user, request_id, confirmed_staff=data.get("confirmed_staff_id") or None
        )
        return _request_detail(shift_request)


class RespondToSwapView(MarketplaceApiView):
    """POST body: accept (bool), confirmed_staff_id."""

    def post(self, request: HttpRequest, request_id) -> JsonResponse:
        data = _payload(request)
        shift_request = marketplace.respond_to_swap(
            request.user,
            request_id,
            _flag(data, "accept"),
            confirmed_staff=data.get("confirmed_staff_id") or None,
        )
        return _request_detail(shift_request)


class DecisionView(MarketplaceApiView):
    """POST body: approve (bool), note."""

    def post(self, request: HttpRequest, request_id) -> JsonResponse:
        data = _payload(request)
        shift_request = marketplace.resolve(
            request.user,
            request_id,
            _flag(data, "approve"),
            note=data.get("note") or "",
        )
        return _request_detail(shift_request)


class CancelRequestView(MarketplaceApiView):

    def post(self, request: HttpRequest, request_id) -> JsonResponse:
        shift_request = marketplace.cancel(request.user, request_id)
        return _request_detail(shift_request)
