from __future__ import annotations

from rest_framework import serializers


class ConfirmPaymentSerializer(serializers.Serializer):
    token = serializers.CharField(required=False, allow_blank=True, default="")
    PayerID = serializers.CharField(required=False, allow_blank=True, default="")
    retry = serializers.BooleanField(required=False, default=False)


class StartCheckoutSerializer(serializers.Serializer):
    article_id = serializers.CharField(max_length=64)
    subscription_plan_id = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField(max_length=3, required=False, default="USD")
    item_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
