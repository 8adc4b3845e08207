"""
Tests for the uncaught exception dispatcher.
"""

from __future__ import annotations

import pytest
from django.http import HttpResponse

from apps.core import dispatcher as dispatcher_module
from apps.core.dispatcher import (
    ERROR_TITLE,
    GENERIC_FAILURE_MESSAGE,
    PRESENTER_MISSING_MESSAGE,
    UncaughtExceptionDispatcher,
)
from apps.core.exceptions import EscalatedError
from apps.core.dtos import Severity

MISSING_PRESENTER = "apps.missing.presenter.ErrorPresenter"


class RecordingPresenter:
    """Echoes its arguments so tests can inspect what was passed."""

    @staticmethod
    def render_error(status_code, title, message, details, request=None, debug=False):
        body = f"{title}|{message}|{details}|{request is not None}|{debug}"
        return HttpResponse(body, status=status_code)


class FailingPresenter:
    @staticmethod
    def render_error(status_code, title, message, details, request=None, debug=False):
        raise LookupError("template engine unavailable")


def _raise(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as raised:
        return raised


def _dispatcher(policy, presenter: str) -> UncaughtExceptionDispatcher:
    return UncaughtExceptionDispatcher(policy.model_copy(update={"presenter_path": presenter}))


class TestPresenterAvailability:
    """
    Tests for UncaughtExceptionDispatcher.presenter_available.
    """

    @pytest.mark.parametrize(
        "path",
        [
            "apps.errors.presenter.ErrorPresenter",
            f"{__name__}.RecordingPresenter",
        ],
    )
    def test_existing_module(self, policy, path):
        assert _dispatcher(policy, path).presenter_available() is True

    @pytest.mark.parametrize(
        "path",
        [
            MISSING_PRESENTER,
            "nonexistent_package.presenter.ErrorPresenter",
            "ErrorPresenter",
            "apps.errors.presenter.",
        ],
    )
    def test_missing_or_invalid_path(self, policy, path):
        """
        GOAL: Verify unlocatable presenters are reported without raising.
        """
        assert _dispatcher(policy, path).presenter_available() is False


class TestDispatch:
    """
    Tests for UncaughtExceptionDispatcher.dispatch.
    """

    @pytest.mark.parametrize("debug", [False, True])
    def test_missing_presenter_returns_fixed_message(self, policy, debug):
        """
        GOAL: Verify the missing presenter branch.

        GUARANTEES:
          - Status 500
          - Body is exactly the fixed critical message in every environment
        """
        dispatcher = UncaughtExceptionDispatcher(
            policy.model_copy(update={"presenter_path": MISSING_PRESENTER, "debug_enabled": debug})
        )

        response = dispatcher.dispatch(_raise(ValueError("boom")))

        assert response.status_code == 500
        assert response.content.decode() == PRESENTER_MISSING_MESSAGE

    def test_presenter_receives_exception_details(self, policy, rf):
        """
        GOAL: Verify the presenter is called with title, message and details.

        GUARANTEES:
          - Presenter response is returned unchanged
          - Details contain file, line and trace
        """
        dispatcher = _dispatcher(policy, f"{__name__}.RecordingPresenter")

        response = dispatcher.dispatch(_raise(ValueError("boom")), request=rf.get("/panel/"))

        assert response.status_code == 500
        title, message, details, has_request, debug = response.content.decode().split("|")
        assert title == ERROR_TITLE
        assert message == "boom"
        assert "tests_dispatcher.py on line" in details
        assert "\nTrace: #0 " in details
        assert has_request == "True"
        assert debug == "False"

    def test_escalated_error_keeps_original_location(self, policy):
        """
        GOAL: Verify escalated runtime errors report the original fault site.
        """
        dispatcher = _dispatcher(policy, f"{__name__}.RecordingPresenter")
        exc = _raise(EscalatedError("bad state", Severity.USER_ERROR, "/srv/app/state.py", 7))

        response = dispatcher.dispatch(exc)

        assert "File: /srv/app/state.py on line 7" in response.content.decode()

    def test_real_presenter_renders_page(self, policy):
        response = UncaughtExceptionDispatcher(policy).dispatch(_raise(ValueError("boom")))

        assert response.status_code == 500
        assert "Error interno" in response.content.decode()

    @pytest.mark.parametrize("debug, setting", [(False, True), (True, False)])
    def test_presenter_details_follow_policy_not_settings(self, policy, settings, debug, setting):
        """
        GOAL: Verify detail disclosure uses the startup policy, not live settings.

        GUARANTEES:
          - Details block is rendered iff the policy has debug enabled
        """
        settings.APP_DEBUG = setting
        dispatcher = UncaughtExceptionDispatcher(policy.model_copy(update={"debug_enabled": debug}))

        response = dispatcher.dispatch(_raise(ValueError("boom")))

        assert ("error-details" in response.content.decode()) is debug

    def test_presenter_failure_in_production(self, policy):
        """
        GOAL: Verify presenter failures do not leak details in production.
        """
        response = _dispatcher(policy, f"{__name__}.FailingPresenter").dispatch(_raise(ValueError("boom")))

        assert response.status_code == 500
        assert response.content.decode() == GENERIC_FAILURE_MESSAGE

    def test_presenter_failure_in_debug(self, debug_policy):
        """
        GOAL: Verify presenter failures show the secondary error in debug mode.

        GUARANTEES:
          - Message of the presenter's exception is shown
          - File and line of the presenter's failure are shown
        """
        response = _dispatcher(debug_policy, f"{__name__}.FailingPresenter").dispatch(
            _raise(ValueError("boom"))
        )

        body = response.content.decode()
        assert response.status_code == 500
        assert body.startswith("Error crítico: template engine unavailable\nEn archivo: ")
        assert "tests_dispatcher.py línea: " in body

    def test_exception_is_reported_to_monitoring(self, policy, monkeypatch):
        """
        GOAL: Verify dispatched exceptions are sent to Sentry with location extras.
        """
        calls = []
        monkeypatch.setattr(
            dispatcher_module,
            "capture_exception",
            lambda exc, **kwargs: calls.append((exc, kwargs)),
        )
        exc = _raise(ValueError("boom"))

        _dispatcher(policy, f"{__name__}.RecordingPresenter").dispatch(exc)

        assert len(calls) == 1
        assert calls[0][0] is exc
        assert calls[0][1]["tags"] == {"exception_type": "ValueError"}
        assert calls[0][1]["extra"]["file"].endswith("tests_dispatcher.py")

    def test_missing_presenter_skips_monitoring(self, policy, monkeypatch):
        calls = []
        monkeypatch.setattr(dispatcher_module, "capture_exception", lambda exc, **kwargs: calls.append(exc))

        _dispatcher(policy, MISSING_PRESENTER).dispatch(_raise(ValueError("boom")))

        assert calls == []
