from __future__ import annotations

from collections.abc import Mapping

from apps.payments.domain.errors import MissingCredentialsError
from apps.payments.domain.types import RedirectContext

TOKEN_PARAM = "token"
PAYER_ID_PARAM = "PayerID"


def read_redirect_context(params: Mapping[str, str]) -> RedirectContext:
    token = (params.get(TOKEN_PARAM) or "").strip()
    payer_id = (params.get(PAYER_ID_PARAM) or "").strip()
    if not token or not payer_id:
        raise MissingCredentialsError()
    return RedirectContext(transaction_token=token, payer_id=payer_id)


def success_redirect_url(*, template: str, article_id: str | None) -> str:
    if not article_id:
        return "/"
    return template.format(article_id=article_id)
