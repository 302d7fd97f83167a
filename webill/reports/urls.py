from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard-stats/', views.dashboard_stats, name='dashboard-stats'),
    path('reports/recent-transactions/', views.recent_transactions, name='recent-transactions'),
    path('reports/sales-summary/', views.sales_summary, name='sales-summary'),
    path('reports/tax-summary/', views.tax_summary, name='tax-summary'),
    path('reports/pos-analytics/', views.pos_analytics, name='pos-analytics'),
    path('reports/party-aging/', views.party_aging, name='party-aging'),
    path('reports/credit-analysis/', views.credit_analysis, name='credit-analysis'),
    path('reports/inventory-valuation/', views.inventory_valuation, name='inventory-valuation'),
    path('reports/low-stock/', views.low_stock, name='low-stock'),
    path('reports/profit-loss/', views.profit_loss, name='profit-loss'),
]
