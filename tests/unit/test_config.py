"""
Unit tests for process configuration.
"""

from unittest.mock import Mock, patch

import pytest
from flask import Flask
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from shopfront import config
from shopfront.__main__ import main
from shopfront.app import connect_store, create_app
from shopfront.errors import ConfigurationMissing, StoreUnavailable

from tests.doubles import InMemoryDatabase, RecordingCheckoutClient

ENV_NAMES = (
    "MONGODB_URL",
    "MONGO_URI",
    "STRIPE_SECRET_KEY",
    "FRONTEND_URL",
    "CORS_ALLOWED_ORIGINS",
    "PORT",
    "CHECKOUT_CURRENCY",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    """Tests for reading the environment."""

    def test_missing_credentials_are_all_reported(self):
        with pytest.raises(ConfigurationMissing) as excinfo:
            config.load_settings()

        assert excinfo.value.names == ["MONGO_URI", "STRIPE_SECRET_KEY"]

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URL", "mongodb://localhost:27017/shop")
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_abc")

        settings = config.load_settings()

        assert settings["MONGO_URI"] == "mongodb://localhost:27017/shop"
        assert settings["FRONTEND_URL"] == "http://localhost:3000"
        assert settings["PORT"] == 8080
        assert settings["CHECKOUT_CURRENCY"] == "inr"
        assert settings["MAX_CONTENT_LENGTH"] == 10 * 1024 * 1024

    def test_mongodb_url_wins_over_mongo_uri(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URL", "mongodb://primary/shop")
        monkeypatch.setenv("MONGO_URI", "mongodb://fallback/shop")

        settings = config.load_settings(required=())

        assert settings["MONGO_URI"] == "mongodb://primary/shop"

    def test_invalid_port_falls_back(self, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")

        assert config.load_settings(required=())["PORT"] == 8080

    def test_cors_origins(self, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "https://shop.example.com/")
        monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://admin.example.com, ,")

        settings = config.load_settings(required=())

        assert settings["FRONTEND_URL"] == "https://shop.example.com"
        assert settings["CORS_ALLOWED_ORIGINS"] == [
            "https://shop.example.com",
            "https://admin.example.com",
        ]


class TestStartup:
    """The application refuses to start without its credentials."""

    def test_missing_payment_key_fails_at_startup(self):
        with pytest.raises(ConfigurationMissing) as excinfo:
            create_app({"TESTING": True}, db=InMemoryDatabase())

        assert excinfo.value.names == ["STRIPE_SECRET_KEY"]

    def test_missing_store_url_fails_at_startup(self):
        with pytest.raises(ConfigurationMissing) as excinfo:
            create_app({"TESTING": True}, checkout_client=RecordingCheckoutClient())

        assert excinfo.value.names == ["MONGO_URI"]

    def test_builds_stripe_client_from_configuration(self):
        app = create_app(
            {
                "TESTING": True,
                "STRIPE_SECRET_KEY": "sk_test_abc",
                "FRONTEND_URL": "https://shop.example.com",
            },
            db=InMemoryDatabase(),
        )
        response = Mock(ok=True, status_code=200)
        response.json.return_value = {
            "id": "cs_test_9",
            "url": "https://checkout.stripe.com/c/pay/cs_test_9",
        }

        with patch("shopfront.checkout.requests.post", return_value=response) as post:
            result = app.test_client().post(
                "/create-checkout-session",
                json=[{"name": "Widget", "price": "19.99", "qty": 2}],
            )

        assert result.get_json() == {"url": "https://checkout.stripe.com/c/pay/cs_test_9"}
        args, kwargs = post.call_args
        assert args[0] == "https://api.stripe.com/v1/checkout/sessions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk_test_abc"
        sent = dict(kwargs["data"])
        assert sent["success_url"] == "https://shop.example.com/success"
        assert sent["cancel_url"] == "https://shop.example.com/cancel"


class TestStoreConnection:
    """An unreachable store stops the process from starting."""

    def make_flask_app(self):
        app = Flask(__name__)
        app.config.update(
            MONGO_URI="mongodb://127.0.0.1:1/shop",
            MONGO_DBNAME="test",
            MONGO_SERVER_SELECTION_TIMEOUT_MS=500,
        )
        return app

    def test_failed_ping_raises_store_unavailable(self):
        with patch("shopfront.app.PyMongo") as pymongo_cls:
            pymongo_cls.return_value.cx.admin.command.side_effect = (
                ServerSelectionTimeoutError("127.0.0.1:1: connection refused")
            )
            with pytest.raises(StoreUnavailable):
                connect_store(self.make_flask_app())

        assert pymongo_cls.call_args.kwargs["serverSelectionTimeoutMS"] == 500

    def test_uses_named_database_when_uri_has_none(self):
        with patch("shopfront.app.PyMongo") as pymongo_cls:
            mongo = pymongo_cls.return_value
            mongo.db = None

            db = connect_store(self.make_flask_app())

        mongo.cx.__getitem__.assert_called_once_with("test")
        assert db is mongo.cx.__getitem__.return_value

    def test_create_app_fails_when_store_is_unreachable(self):
        with patch("shopfront.app.PyMongo") as pymongo_cls:
            pymongo_cls.return_value.cx.admin.command.side_effect = PyMongoError("down")
            with pytest.raises(StoreUnavailable):
                create_app(
                    {
                        "TESTING": True,
                        "MONGO_URI": "mongodb://127.0.0.1:1/shop",
                        "STRIPE_SECRET_KEY": "sk_test_abc",
                    }
                )


class TestMain:
    """``python -m shopfront`` exits non-zero when startup fails."""

    @pytest.mark.parametrize(
        "error",
        [StoreUnavailable("Unable to connect"), ConfigurationMissing(["MONGO_URI"])],
    )
    def test_startup_failure_exits_with_status_one(self, error):
        with patch("shopfront.__main__.create_app", side_effect=error):
            with pytest.raises(SystemExit) as excinfo:
                main()

        assert excinfo.value.code == 1

    def test_runs_server_on_configured_port(self):
        app = Mock()
        app.config = {"PORT": 9090}

        with patch("shopfront.__main__.create_app", return_value=app):
            main()

        app.run.assert_called_once_with(host="0.0.0.0", port=9090)
