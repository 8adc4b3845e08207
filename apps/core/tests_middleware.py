"""
Tests for UncaughtExceptionMiddleware and the handler500 view.
"""

from __future__ import annotations

import pytest
from django.core.exceptions import PermissionDenied
from django.http import Http404, HttpResponse
from django.urls import path

from apps.core.dispatcher import PRESENTER_MISSING_MESSAGE
from apps.core.dtos import Severity
from apps.core.error_handler import trigger_error
from apps.core.middleware import UncaughtExceptionMiddleware
from apps.core.views import server_error


def failing_view(request):
    raise ValueError("sensor read failed")


def user_error_view(request):
    trigger_error("bad state", Severity.USER_ERROR)
    return HttpResponse("unreachable")


def missing_view(request):
    raise Http404("no such device")


urlpatterns = [
    path("fail/", failing_view),
    path("user-error/", user_error_view),
    path("missing/", missing_view),
]


def _middleware() -> UncaughtExceptionMiddleware:
    return UncaughtExceptionMiddleware(lambda request: HttpResponse("OK"))


class TestUncaughtExceptionMiddleware:
    """
    Tests for UncaughtExceptionMiddleware.process_exception.
    """

    def test_passes_responses_through(self, rf):
        response = _middleware()(rf.get("/"))

        assert response.content == b"OK"

    def test_server_error_is_dispatched(self, rf, install_handlers, policy):
        """
        GOAL: Verify view exceptions become the dispatcher's 500 response.
        """
        install_handlers(policy)

        response = _middleware().process_exception(rf.get("/panel/"), ValueError("boom"))

        assert response.status_code == 500
        assert "Error interno" in response.content.decode()

    @pytest.mark.parametrize("exception", [Http404("gone"), PermissionDenied("no")])
    def test_client_errors_are_left_to_django(self, rf, install_handlers, policy, exception):
        """
        GOAL: Verify 4xx exceptions are not turned into 500 responses.
        """
        install_handlers(policy)

        assert _middleware().process_exception(rf.get("/"), exception) is None

    def test_missing_presenter_message(self, rf, install_handlers, policy):
        install_handlers(policy.model_copy(update={"presenter_path": "apps.missing.Presenter"}))

        response = _middleware().process_exception(rf.get("/"), ValueError("boom"))

        assert response.content.decode() == PRESENTER_MISSING_MESSAGE


@pytest.mark.urls(__name__)
class TestRequestCycle:
    """
    End-to-end requests through the configured middleware stack.
    """

    def test_view_exception_returns_error_page(self, client, install_handlers, policy):
        """
        GOAL: Verify an uncaught view exception ends in a rendered 500 page.

        GUARANTEES:
          - Status 500
          - Exception details are hidden outside debug mode
        """
        install_handlers(policy)

        response = client.get("/fail/")

        assert response.status_code == 500
        assert "sensor read failed" in response.content.decode()
        assert "error-details" not in response.content.decode()

    def test_escalated_user_error_returns_error_page(self, client, install_handlers, debug_policy):
        """
        GOAL: Verify trigger_error(USER_ERROR) inside a view ends in the dispatcher.

        GUARANTEES:
          - Details point at the trigger_error call in the view
        """
        install_handlers(debug_policy)

        response = client.get("/user-error/")

        body = response.content.decode()
        assert response.status_code == 500
        assert "bad state" in body
        assert "tests_middleware.py on line" in body

    def test_not_found_is_not_dispatched(self, client, install_handlers, policy):
        install_handlers(policy)

        response = client.get("/missing/")

        assert response.status_code == 404


class TestServerErrorView:
    """
    Tests for the handler500 view.
    """

    def test_dispatches_active_exception(self, rf, install_handlers, policy):
        install_handlers(policy)

        try:
            raise ValueError("late failure")
        except ValueError:
            response = server_error(rf.get("/"))

        assert response.status_code == 500
        assert "late failure" in response.content.decode()

    def test_without_active_exception(self, rf, install_handlers, policy):
        """
        GOAL: Verify handler500 still answers when no exception is active.
        """
        install_handlers(policy)

        response = server_error(rf.get("/"))

        assert response.status_code == 500
        assert "Unknown server error" in response.content.decode()
