"""ViewSets and API views for the agency API v1.

Writes go through the service layer (``clients.services``,
``sales.services``) which raises ``ValueError`` for invalid input and
``PermissionDenied`` for ownership violations.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from rest_framework import status, viewsets
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.filters import SaleFilter
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import IsOwnerOrManager
from api.v1.serializers import ClientSerializer, MeSerializer, SaleSerializer
from clients import services as client_services
from clients.models import Client
from sales import services as sale_services
from sales.models import Sale

logger = logging.getLogger("bulwark")


class _ServiceBackedViewSet(viewsets.ModelViewSet):
    """Role-scoped queryset and service error mapping shared by clients/sales."""

    permission_classes = [IsAuthenticated, IsOwnerOrManager]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        qs = super().get_queryset()
        if not self.request.user.is_manager_role:
            qs = qs.filter(agent=self.request.user)
        return qs

    def _call_service(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except DjangoPermissionDenied as e:
            raise PermissionDenied(str(e))
        except ValueError as e:
            return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self._call_service(
            self.create_service, actor=request.user, **serializer.validated_data,
        )
        if isinstance(result, Response):
            return result
        return Response(self.get_serializer(result).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        result = self._call_service(
            self.update_service, instance, actor=request.user, **serializer.validated_data,
        )
        if isinstance(result, Response):
            return result
        result.refresh_from_db()
        return Response(self.get_serializer(result).data)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        result = self._call_service(self.delete_service, instance, actor=request.user)
        if isinstance(result, Response):
            return result
        return Response(status=status.HTTP_204_NO_CONTENT)


class ClientViewSet(_ServiceBackedViewSet):
    """
    CRUD for clients.

    Agents see their own clients; managers see every agent's.
    """

    serializer_class = ClientSerializer
    queryset = Client.objects.select_related('agent')
    filterset_fields = ['status', 'agent']
    search_fields = ['first_name', 'last_name', 'email', 'phone', 'employer']
    ordering_fields = ['last_name', 'created_at', 'status']

    create_service = staticmethod(client_services.create_client)
    delete_service = staticmethod(client_services.delete_client)

    @staticmethod
    def update_service(client, *, actor, agent=None, **changes):
        if agent is not None and agent.pk != client.agent_id:
            raise ValueError("Client ownership cannot be changed.")
        return client_services.update_client(client, actor=actor, **changes)


class SaleViewSet(_ServiceBackedViewSet):
    """
    CRUD for sales.

    - list: filter by agent, client, status, sale date range
    - create/update/delete: goal progress follows automatically
    """

    serializer_class = SaleSerializer
    queryset = Sale.objects.select_related('agent', 'client')
    filterset_class = SaleFilter
    search_fields = ['product_name', 'policy_number', 'client__first_name', 'client__last_name']
    ordering_fields = ['sale_date', 'created_at', 'premium_amount', 'commission_amount']

    create_service = staticmethod(sale_services.create_sale)
    update_service = staticmethod(sale_services.update_sale)
    delete_service = staticmethod(sale_services.delete_sale)


class MeView(APIView):
    """
    GET /api/v1/auth/me/ - return the authenticated user's profile.
    PATCH /api/v1/auth/me/ - update first_name, last_name, phone.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(MeSerializer(request.user).data)

    def patch(self, request):
        serializer = MeSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
