from typing import Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_pymongo import PyMongo
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from .checkout import StripeCheckoutClient, build_line_items
from .config import REQUIRED_SETTINGS, load_settings
from .errors import ShopfrontError, StoreUnavailable
from .store import AccountStore, ContactStore, ProductStore


def connect_store(app: Flask):
    """Open the Mongo connection and ping it, failing fast when unreachable."""
    mongo = PyMongo(
        app,
        serverSelectionTimeoutMS=app.config["MONGO_SERVER_SELECTION_TIMEOUT_MS"],
    )
    try:
        mongo.cx.admin.command("ping")
    except PyMongoError as exc:
        raise StoreUnavailable(f"Unable to connect to the database: {exc}") from exc

    # Flask-PyMongo only exposes a database when the URI names one.
    if mongo.db is not None:
        return mongo.db
    return mongo.cx[app.config["MONGO_DBNAME"]]


def create_app(
    config: Optional[Dict] = None, db=None, checkout_client=None
) -> Flask:
    """Create and configure the Flask application.

    ``db`` and ``checkout_client`` replace the Mongo database and the Stripe
    client built from configuration; the matching settings then become
    optional.
    """
    app = Flask(__name__)

    required = [
        name
        for name in REQUIRED_SETTINGS
        if not (name == "MONGO_URI" and db is not None)
        and not (name == "STRIPE_SECRET_KEY" and checkout_client is not None)
    ]
    app.config.update(load_settings(config, required=required))

    app.logger.info("MONGODB_URL present: %s", bool(app.config["MONGO_URI"]))
    app.logger.info(
        "STRIPE_SECRET_KEY present: %s", bool(app.config["STRIPE_SECRET_KEY"])
    )
    app.logger.info("FRONTEND_URL: %s", app.config["FRONTEND_URL"])

    # Honor proxy headers from the hosting platform's load balancer.
    trusted_proxy_hops = app.config["TRUSTED_PROXY_HOPS"]
    if trusted_proxy_hops:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=trusted_proxy_hops,
            x_proto=trusted_proxy_hops,
            x_host=trusted_proxy_hops,
            x_port=trusted_proxy_hops,
        )

    CORS(app, origins=app.config["CORS_ALLOWED_ORIGINS"] or "*")

    # --- Resources ---

    if db is None:
        db = connect_store(app)
        app.logger.info("Connected to Database")
    if checkout_client is None:
        checkout_client = StripeCheckoutClient(
            app.config["STRIPE_SECRET_KEY"],
            app.config["FRONTEND_URL"],
            api_base=app.config["STRIPE_API_BASE"],
            timeout=app.config["PAYMENT_TIMEOUT_SECONDS"],
        )

    accounts = AccountStore(db, bcrypt_rounds=app.config["BCRYPT_ROUNDS"])
    contacts = ContactStore(db)
    products = ProductStore(db)
    accounts.ensure_indexes()

    @app.errorhandler(ShopfrontError)
    def handle_shopfront_error(error: ShopfrontError):
        if error.status_code >= 500:
            app.logger.error("%s %s failed: %s", request.method, request.path, error)
        else:
            app.logger.info("%s %s rejected: %s", request.method, request.path, error)
        return jsonify(error.to_response()), error.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        if isinstance(error, HTTPException):
            return error
        app.logger.exception("%s %s crashed", request.method, request.path)
        return jsonify({"message": "Server error"}), 500

    def json_object() -> Dict:
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}

    # --- ROUTES ---

    @app.route("/", methods=["GET"])
    def index():
        return "Server is running"

    @app.route("/signup", methods=["POST"])
    def signup():
        payload = json_object()
        accounts.register(payload)
        return jsonify({"message": "Successfully signed up", "alert": True})

    @app.route("/submitContactForm", methods=["POST"])
    def submit_contact_form():
        payload = json_object()
        saved = contacts.submit(payload)
        return (
            jsonify({"message": "Form submitted successfully", "data": saved}),
            201,
        )

    @app.route("/login", methods=["POST"])
    def login():
        payload = json_object()
        account = accounts.login(payload.get("email"))
        app.logger.info("Login for account %s", account.get("_id"))
        return jsonify(
            {"message": "Login successfully", "alert": True, "data": account}
        )

    @app.route("/uploadProduct", methods=["POST"])
    def upload_product():
        payload = json_object()
        products.upload(payload)
        return jsonify({"message": "Successfully uploaded!"})

    @app.route("/product", methods=["GET"])
    def list_products():
        return jsonify(products.list_all())

    @app.route("/create-checkout-session", methods=["POST"])
    def create_checkout_session():
        cart = request.get_json(silent=True)
        line_items = build_line_items(cart, app.config["CHECKOUT_CURRENCY"])
        app.logger.info("Creating checkout session for %d line items", len(line_items))
        session = checkout_client.create_session(line_items)
        return jsonify({"url": session["url"]}), 200

    @app.route("/health")
    def health():
        return {"status": "ok"}, 200

    return app
