from django.urls import path

from .views import CountryListView, FxRefreshView

urlpatterns = [
    path('countries/', CountryListView.as_view(), name='country-list'),
    path('fx/refresh', FxRefreshView.as_view(), name='fx-refresh'),
]
