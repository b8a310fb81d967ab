"""
URL configuration for the scheduler app.
"""

from django.urls import path
from . import views

urlpatterns = [
    path('', views.api_info, name='api-info'),
    path('algorithms/', views.get_algorithms, name='get-algorithms'),
    path('schedule/', views.schedule, name='schedule'),
    path('schedule/compare/', views.compare, name='compare-algorithms'),
    path('schedule/analytics/', views.analytics, name='schedule-analytics'),
]
