from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'visits'

router = SimpleRouter()
router.register(r'', views.VisitViewSet, basename='visit')

urlpatterns = [
    # Visit ViewSet routes
    # GET    /api/visits/                             - Diary (created or accepted)
    # POST   /api/visits/                             - Log a visit (multipart)
    # GET    /api/visits/{id}/                        - Get visit
    # PUT    /api/visits/{id}/                        - Update visit (creator only)
    # PATCH  /api/visits/{id}/                        - Partial update (creator only)
    # DELETE /api/visits/{id}/                        - Delete visit (creator only)
    # GET    /api/visits/shared/                      - Shared diary entries
    # GET    /api/visits/invitations/pending/         - Invitations to answer
    # POST   /api/visits/{id}/respond/                - Accept/reject invitation
    # GET    /api/visits/{id}/participants/           - Participants with reviews
    # POST   /api/visits/{id}/invite/                 - Invite more friends (creator only)
    # DELETE /api/visits/{id}/participants/{user_id}/ - Remove participant (creator only)

    path('', include(router.urls)),
]
