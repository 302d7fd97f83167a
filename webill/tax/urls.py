from django.urls import path
from .views import gst_calculate, gst_rates

urlpatterns = [
    path('tax/gst/calculate/', gst_calculate, name='gst-calculate'),
    path('tax/gst/rates/', gst_rates, name='gst-rates'),
]
