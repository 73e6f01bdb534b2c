from django.urls import path
from .views import OrdersPingView
from .views import OrdersCollectionView
app_name = "orders"

urlpatterns = [
    path("ping/", OrdersPingView.as_view(), name="ping"),
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # POST create
]
