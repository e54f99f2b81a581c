"""Root URL configuration.

Request routing for the file manager lives in the transport layer;
only the admin site is mounted here.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
