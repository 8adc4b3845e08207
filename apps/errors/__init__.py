"""
Error page presentation.

Renders the page shown for uncaught exceptions. Used by
apps.core.dispatcher through settings.ERROR_PRESENTER.
"""
