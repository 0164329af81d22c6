from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'friends'

router = SimpleRouter()
router.register(r'requests', views.FriendRequestViewSet, basename='friend-request')

urlpatterns = [
    # Friend request routes
    # POST   /api/friends/requests/                 - Send request
    # DELETE /api/friends/requests/{id}/            - Cancel pending request (requester)
    # POST   /api/friends/requests/{id}/respond/    - Accept/reject (addressee)
    # GET    /api/friends/requests/received/        - Pending requests to me
    # GET    /api/friends/requests/sent/            - Pending requests from me

    path('', views.my_friends, name='friend-list'),
    path('<uuid:user_id>/', views.unfriend, name='friend-remove'),

    path('', include(router.urls)),
]
