from __future__ import annotations

# Application routes are registered by the host project.
urlpatterns: list = []

handler500 = "apps.core.views.server_error"
