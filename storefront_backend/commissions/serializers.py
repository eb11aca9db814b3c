from django.contrib.auth import get_user_model
from rest_framework import serializers

from commissions.models import Commission, Distributor, DistributorSalesRep, OrganizationSalesRep
from organizations.models import Organization

User = get_user_model()


class DistributorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Distributor
        fields = [
            "id",
            "user",
            "name",
            "code",
            "commission_rate",
            "contact_email",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


class DistributorSalesRepSerializer(serializers.ModelSerializer):
    sales_rep_email = serializers.EmailField(source="sales_rep.email", read_only=True)
    distributor_name = serializers.CharField(source="distributor.name", read_only=True)

    class Meta:
        model = DistributorSalesRep
        fields = [
            "id",
            "distributor",
            "distributor_name",
            "sales_rep",
            "sales_rep_email",
            "commission_split_type",
            "sales_rep_rate",
            "distributor_override_rate",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


class OrganizationSalesRepSerializer(serializers.ModelSerializer):
    sales_rep_email = serializers.EmailField(source="sales_rep.email", read_only=True)
    organization_name = serializers.CharField(source="organization.name", read_only=True)

    class Meta:
        model = OrganizationSalesRep
        fields = [
            "id",
            "organization",
            "organization_name",
            "sales_rep",
            "sales_rep_email",
            "distributor",
            "commission_rate",
            "is_active",
            "assigned_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_active", "assigned_at", "updated_at"]


class AssignSalesRepInputSerializer(serializers.Serializer):
    organization = serializers.PrimaryKeyRelatedField(queryset=Organization.objects.filter(is_active=True))
    sales_rep = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))
    commission_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )
    distributor = serializers.PrimaryKeyRelatedField(
        queryset=Distributor.objects.filter(is_active=True), required=False, allow_null=True
    )


class CommissionSerializer(serializers.ModelSerializer):
    order_no = serializers.CharField(source="order.order_no", read_only=True)
    sales_rep_email = serializers.EmailField(source="sales_rep.email", read_only=True)
    organization_name = serializers.CharField(source="organization.name", read_only=True, default=None)
    distributor_name = serializers.CharField(source="distributor.name", read_only=True, default=None)

    class Meta:
        model = Commission
        fields = [
            "id",
            "order",
            "order_no",
            "sales_rep",
            "sales_rep_email",
            "organization",
            "organization_name",
            "distributor",
            "distributor_name",
            "order_total",
            "total_margin",
            "commission_rate",
            "commission_amount",
            "sales_rep_commission",
            "distributor_commission",
            "commission_split_type",
            "margin_details",
            "status",
            "notes",
            "approved_by",
            "approved_at",
            "paid_at",
            "payment_reference",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CommissionActionInputSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    payment_reference = serializers.CharField(required=False, allow_blank=True, default="")
