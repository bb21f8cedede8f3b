"""
Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.
"""

from django.urls import include, path

from server.apps.files import views

urlpatterns = [
    # Health check:
    path('health', views.health, name='health'),

    # Apps:
    path(
        'api/files/',
        include('server.apps.files.urls', namespace='files'),
    ),
]
