from __future__ import annotations

from datetime import datetime

import requests
from flask import current_app

from thriftshop.extensions import db
from thriftshop.integrations.common import IntegrationError
from thriftshop.integrations.payments.base import ConnectAccountResult, PaymentsProvider
from thriftshop.models import Profile


def apply_account_status(profile: Profile, account: ConnectAccountResult) -> Profile:
    profile.stripe_details_submitted = bool(account.details_submitted)
    profile.stripe_charges_enabled = bool(account.charges_enabled)
    profile.stripe_payouts_enabled = bool(account.payouts_enabled)
    if account.details_submitted and profile.stripe_onboarded_at is None:
        profile.stripe_onboarded_at = datetime.utcnow()
    db.session.commit()
    return profile


def account_status_payload(profile: Profile) -> dict:
    return {
        "details_submitted": bool(profile.stripe_details_submitted),
        "charges_enabled": bool(profile.stripe_charges_enabled),
        "payouts_enabled": bool(profile.stripe_payouts_enabled),
        "account_id": profile.stripe_account_id,
    }


def refresh_account_status(profile: Profile, provider: PaymentsProvider) -> ConnectAccountResult:
    account = provider.retrieve_account(profile.stripe_account_id)
    apply_account_status(profile, account)
    current_app.logger.info(
        "connect_status_refreshed user_id=%s account=%s details_submitted=%s charges_enabled=%s",
        profile.user_id,
        profile.stripe_account_id,
        account.details_submitted,
        account.charges_enabled,
    )
    return account


def ensure_payouts_connected(profile: Profile, provider_factory) -> bool:
    """True when the seller may publish. Stale stored flags get one live refresh."""
    if profile.payouts_connected():
        return True
    if not profile.stripe_account_id:
        return False
    try:
        account = refresh_account_status(profile, provider_factory())
    except (IntegrationError, RuntimeError, requests.RequestException) as e:
        current_app.logger.warning("connect_status_refresh_failed user_id=%s detail=%s", profile.user_id, str(e)[:200])
        return False
    return bool(account.details_submitted or account.charges_enabled)


def sync_account_from_event(account: dict) -> Profile | None:
    account_id = str(account.get("id") or "").strip()
    if not account_id:
        return None
    profile = Profile.query.filter_by(stripe_account_id=account_id).first()
    if profile is None:
        current_app.logger.info("connect_account_event_unmatched account=%s", account_id)
        return None
    return apply_account_status(
        profile,
        ConnectAccountResult(
            id=account_id,
            details_submitted=bool(account.get("details_submitted")),
            charges_enabled=bool(account.get("charges_enabled")),
            payouts_enabled=bool(account.get("payouts_enabled")),
            raw=account,
        ),
    )
