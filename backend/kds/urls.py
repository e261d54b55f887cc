from django.urls import path
from . import views

app_name = 'kds'

urlpatterns = [
    # Active work items for kitchen and front-of-house displays
    path('orders/', views.active_kitchen_orders, name='active_orders'),

    # Kitchen staff actions
    path('orders/<str:order_id>/status/', views.advance_status, name='advance_status'),
    path('orders/<str:order_id>/assign/', views.assign_staff, name='assign_staff'),
    path('orders/<str:order_id>/items/<int:item_index>/', views.mark_item, name='mark_item'),
]
