from __future__ import annotations

from flask import Blueprint, redirect, request


pages_bp = Blueprint("pages_bp", __name__)


def _flag(name: str) -> bool:
    return bool((request.args.get(name) or "").strip())


@pages_bp.get("/seller-dashboard")
def legacy_seller_dashboard():
    return redirect("/seller", code=302)


@pages_bp.get("/seller/dashboard")
def seller_dashboard():
    target = "/seller"
    if _flag("stripe_success"):
        target += "?stripe_success=true"
    elif _flag("stripe_refresh"):
        target += "?stripe_refresh=true"
    return redirect(target, code=302)
