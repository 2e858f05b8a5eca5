# apps/purchases/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import PurchaseViewSet, PurchaseEntryViewSet

router = DefaultRouter()
router.register(r'purchases', PurchaseViewSet, basename='purchase')
router.register(r'purchase-entries', PurchaseEntryViewSet, basename='purchase-entry')

urlpatterns = [
    path('', include(router.urls)),
]
