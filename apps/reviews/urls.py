from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'reviews'

router = SimpleRouter()
router.register(r'', views.ReviewViewSet, basename='review')

urlpatterns = [
    # Review ViewSet routes
    # GET    /api/reviews/?visit={id}  - Reviews of a visit you take part in
    # POST   /api/reviews/             - Review a visit you accepted
    # GET    /api/reviews/{id}/        - Get review
    # PUT    /api/reviews/{id}/        - Update review (author only)
    # PATCH  /api/reviews/{id}/        - Partial update (author only)
    # DELETE /api/reviews/{id}/        - Delete review (author only)
    # GET    /api/reviews/mine/        - Current user's reviews

    path('', include(router.urls)),
]
