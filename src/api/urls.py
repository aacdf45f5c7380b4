"""Main API URL router for /api/v1/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from api.auth_views import CookieTokenObtainPairView, CookieTokenRefreshView, LogoutAPIView
from api.v1 import views as v1_views
from goals import goal_views

router = DefaultRouter()
router.register(r'clients', v1_views.ClientViewSet, basename='client')
router.register(r'sales', v1_views.SaleViewSet, basename='sale')
router.register(r'goals', goal_views.GoalViewSet, basename='goal')


app_name = 'api'
urlpatterns = [
    path('', include(router.urls)),

    # Auth endpoints
    path('auth/token/', CookieTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', CookieTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', LogoutAPIView.as_view(), name='auth-logout'),
    path('auth/me/', v1_views.MeView.as_view(), name='auth-me'),
]
