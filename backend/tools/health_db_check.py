from sqlalchemy import text
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.engine.url import make_url

from thriftshop import create_app
from thriftshop.extensions import db
from thriftshop.models import Listing, Order


def _safe_uri(uri: str) -> str:
    if not uri:
        return "unknown"
    try:
        return make_url(uri).render_as_string(hide_password=True)
    except ArgumentError:
        return "unknown"


def main():
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
        print("SQLALCHEMY_DATABASE_URI:", _safe_uri(uri))
        try:
            with db.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            print("SELECT 1: success")
        except SQLAlchemyError as e:
            print("SELECT 1: fail")
            msg = str(e)
            if msg:
                print("error:", (msg[:300] + "...") if len(msg) > 300 else msg)
            return
        active = Listing.query.filter_by(status="active").count()
        missing = Listing.query.filter(Listing.status == "active", Listing.embedding.is_(None)).count()
        print(f"active listings: {active} (without embedding: {missing})")
        print(f"orders: {Order.query.count()}")


if __name__ == "__main__":
    main()
