from django.urls import path

from . import views

app_name = 'loyalty'

urlpatterns = [
    path('balance/', views.loyalty_balance, name='balance'),
    path('settings/', views.loyalty_settings, name='settings'),
]
