"""
URL configuration for stream logging and revenue reports.

Routes:
    /streams/log/        - Log a stream (POST)
    /streams/analytics/  - Stream analytics (GET)
    /streams/earnings/   - Earnings summary (GET)
"""

from rest_framework.routers import SimpleRouter

from streaming.views import StreamViewSet

router = SimpleRouter()
router.register(r"streams", StreamViewSet, basename="stream")

app_name = "streaming"
urlpatterns = router.urls
