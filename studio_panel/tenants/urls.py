from django.urls import path
from . import views

urlpatterns = [
    path('', views.MyOrganizationsView.as_view(), name='organization-list'),
    path('<uuid:org_id>/', views.OrganizationDetailView.as_view(), name='organization-detail'),
]
