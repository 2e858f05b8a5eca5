# apps/distributors/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import DistributorViewSet, ManufacturerViewSet

router = DefaultRouter()
router.register(r'distributors', DistributorViewSet, basename='distributor')
router.register(r'manufacturers', ManufacturerViewSet, basename='manufacturer')

urlpatterns = [
    path('', include(router.urls)),
]
