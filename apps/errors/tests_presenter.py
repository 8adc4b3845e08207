"""
Tests for the error page presenter.
"""

from __future__ import annotations

from apps.errors.presenter import ErrorPresenter


class TestErrorPresenter:
    """
    Tests for ErrorPresenter.render_error.
    """

    def test_renders_status_title_and_message(self, rf):
        """
        GOAL: Verify the page carries status, title and message.
        """
        response = ErrorPresenter.render_error(
            500, "Error interno", "sensor read failed", "File: a.py on line 1", request=rf.get("/")
        )

        body = response.content.decode()
        assert response.status_code == 500
        assert "<title>500 - Error interno</title>" in body
        assert "sensor read failed" in body

    def test_details_hidden_outside_debug(self):
        response = ErrorPresenter.render_error(500, "Error interno", "boom", "File: secret.py on line 9")

        assert "secret.py" not in response.content.decode()

    def test_details_shown_in_debug(self):
        """
        GOAL: Verify debug mode renders the file/line/trace block.
        """
        response = ErrorPresenter.render_error(
            500, "Error interno", "boom", "File: secret.py on line 9", debug=True
        )

        assert "File: secret.py on line 9" in response.content.decode()

    def test_debug_flag_ignores_live_settings(self, settings):
        """
        GOAL: Verify APP_DEBUG changed after startup does not disclose details.
        """
        settings.APP_DEBUG = True

        response = ErrorPresenter.render_error(500, "Error interno", "boom", "File: secret.py on line 9")

        assert "secret.py" not in response.content.decode()

    def test_message_is_escaped(self):
        response = ErrorPresenter.render_error(500, "Error interno", "<script>x</script>", "")

        assert "<script>" not in response.content.decode()
