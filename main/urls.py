from django.urls import path
from main.views import product_views, sale_views, purchase_views


app_name = 'main'


urlpatterns = [
    path('products', product_views.list_products, name='product-list'),
    path('products/create', product_views.create_product, name='product-create'),
    path('products/<int:product_id>', product_views.get_product, name='product-detail'),
    path('products/<int:product_id>/update', product_views.update_product, name='product-update'),
    path('products/<int:product_id>/delete', product_views.delete_product, name='product-delete'),
    path('products/<int:product_id>/stock', product_views.get_product_stock, name='product-stock'),

    path('sales', sale_views.list_sales, name='sale-list'),
    path('sales/create', sale_views.create_sale, name='sale-create'),
    path('sales/<int:sale_id>', sale_views.get_sale, name='sale-detail'),
    path('sales/<int:sale_id>/update', sale_views.update_sale, name='sale-update'),
    path('sales/<int:sale_id>/delete', sale_views.delete_sale, name='sale-delete'),

    path('purchases', purchase_views.list_purchases, name='purchase-list'),
    path('purchases/create', purchase_views.create_purchase, name='purchase-create'),
    path('purchases/<int:purchase_id>', purchase_views.get_purchase, name='purchase-detail'),
    path('purchases/<int:purchase_id>/update', purchase_views.update_purchase, name='purchase-update'),
    path('purchases/<int:purchase_id>/delete', purchase_views.delete_purchase, name='purchase-delete'),
]
