from __future__ import annotations

from decimal import Decimal

from django import forms


class StartCheckoutForm(forms.Form):
    article_id = forms.CharField(max_length=64)
    subscription_plan_id = forms.CharField(max_length=64, required=False)
    amount = forms.DecimalField(min_value=Decimal("0.01"), max_digits=12, decimal_places=2)
    currency = forms.CharField(max_length=3, required=False, initial="USD")
    item_name = forms.CharField(max_length=255, required=False)


class RetryConfirmationForm(forms.Form):
    token = forms.CharField(max_length=255)
    PayerID = forms.CharField(max_length=255)
