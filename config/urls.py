"""
URL configuration for the clinic pharmacy API.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

schema_view = get_schema_view(openapi.Info(
        title="Ayurclinic Pharmacy API",
        default_version='v1',
        description="Medicine purchases, stock and supplier masters",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Swagger documentation
    re_path(r'^swagger(?P<format>\.json|\.yaml)$',
            schema_view.without_ui(cache_timeout=0),
            name='schema-json'),
    re_path(r'^swagger/$',
            schema_view.with_ui('swagger', cache_timeout=0),
            name='schema-swagger-ui'),
    re_path(r'^redoc/$',
            schema_view.with_ui('redoc', cache_timeout=0),
            name='schema-redoc'),

    # Authentication (djoser)
    re_path(r'^api/', include('djoser.urls')),
    re_path(r'^api/', include('djoser.urls.jwt')),

    # Admin
    path('admin/', admin.site.urls),

    # API endpoints
    path('api/', include('apps.users.urls')),
    path('api/', include('apps.distributors.urls')),
    path('api/', include('apps.medicines.urls')),
    path('api/', include('apps.purchases.urls')),
]
