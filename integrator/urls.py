from django.urls import path

from integrator import views

urlpatterns = [
    path('health/', views.health, name='health'),
    path('sync/', views.trigger_sync, name='trigger-sync'),
    path('webhooks/orders/create/', views.order_created_webhook, name='order-created-webhook'),
    path('orders/recent/', views.recent_orders, name='recent-orders'),
    path('orders/<str:order_id>/status/', views.order_status, name='order-status'),
]
