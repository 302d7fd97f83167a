from django.urls import path
from .views import category_list_create, category_detail, item_list_create, item_detail

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Item endpoints
    path('items/', item_list_create, name='item-list-create'),
    path('items/<int:pk>/', item_detail, name='item-detail'),
]
