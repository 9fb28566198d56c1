"""MongoDB-backed stores for accounts, contact messages and products.

Each store wraps one collection and only ever persists the fields named in
its allowlist. Values are cast to strings, the way the storefront's records
have always been typed, and driver failures surface as ``StoreUnavailable``.
"""

import logging
from typing import Dict, Iterable, List, Optional

import bcrypt
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from .errors import AccountNotFound, DuplicateAccount, MissingField, StoreUnavailable

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS = ("firstName", "lastName", "email", "password", "image")
LOGIN_FIELDS = ("_id", "firstName", "lastName", "email", "image")
CONTACT_FIELDS = ("name", "email", "message")
PRODUCT_FIELDS = ("name", "category", "image", "price", "description")


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def pick_fields(payload: Optional[Dict], allowed: Iterable[str]) -> Dict[str, str]:
    if not isinstance(payload, dict):
        return {}
    picked: Dict[str, str] = {}
    for key in allowed:
        value = payload.get(key)
        if value is None:
            continue
        picked[key] = value if isinstance(value, str) else str(value)
    return picked


def serialize_document(document, fields: Optional[Iterable[str]] = None) -> Dict:
    if not document:
        return {}
    keys = fields if fields is not None else document.keys()
    serialized = {}
    for key in keys:
        value = document.get(key)
        serialized[key] = str(value) if isinstance(value, ObjectId) else value
    return serialized


class MongoStore:
    collection_name = ""

    def __init__(self, db):
        self.collection = db[self.collection_name]

    def _insert(self, document: Dict) -> Dict:
        try:
            result = self.collection.insert_one(document)
        except DuplicateKeyError:
            raise
        except PyMongoError as exc:
            raise StoreUnavailable(
                f"Unable to write to {self.collection_name}: {exc}"
            ) from exc
        document["_id"] = result.inserted_id
        return document


class AccountStore(MongoStore):
    collection_name = "users"

    def __init__(self, db, bcrypt_rounds: int = 12):
        super().__init__(db)
        self.bcrypt_rounds = bcrypt_rounds

    def ensure_indexes(self):
        try:
            self.collection.create_index("email", unique=True)
        except PyMongoError as exc:
            logger.warning("Unable to ensure unique index on users.email: %s", exc)

    def find_by_email(self, email: str):
        try:
            return self.collection.find_one({"email": email})
        except PyMongoError as exc:
            raise StoreUnavailable(f"Unable to read users: {exc}") from exc

    def hash_password(self, password: str) -> str:
        hashed = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds)
        )
        return hashed.decode("utf-8")

    def register(self, payload: Optional[Dict]) -> Dict:
        """Create an account unless one already exists for the email.

        ``confirmPassword`` is accepted from the signup form but not stored,
        and nothing checks that it matches ``password``.
        """
        document = pick_fields(payload, ACCOUNT_FIELDS)
        email = normalize_email(document.get("email"))
        if not email:
            raise MissingField("Email")
        document["email"] = email

        if self.find_by_email(email):
            raise DuplicateAccount(email)

        if "password" in document:
            document["password"] = self.hash_password(document["password"])

        try:
            saved = self._insert(document)
        except DuplicateKeyError as exc:
            # Lost a race against a concurrent signup for the same email.
            raise DuplicateAccount(email) from exc

        logger.info("Registered account %s", saved["_id"])
        return serialize_document(saved, LOGIN_FIELDS)

    def login(self, email: Optional[str]) -> Dict:
        normalized = normalize_email(email)
        if not normalized:
            raise MissingField("Email")

        account = self.find_by_email(normalized)
        if not account:
            raise AccountNotFound(normalized)
        return serialize_document(account, LOGIN_FIELDS)


class ContactStore(MongoStore):
    collection_name = "contacts"

    def submit(self, payload: Optional[Dict]) -> Dict:
        saved = self._insert(pick_fields(payload, CONTACT_FIELDS))
        return serialize_document(saved)


class ProductStore(MongoStore):
    collection_name = "products"

    def upload(self, payload: Optional[Dict]) -> Dict:
        saved = self._insert(pick_fields(payload, PRODUCT_FIELDS))
        return serialize_document(saved)

    def list_all(self) -> List[Dict]:
        try:
            documents = list(self.collection.find({}))
        except PyMongoError as exc:
            raise StoreUnavailable(f"Unable to read products: {exc}") from exc
        return [serialize_document(document) for document in documents]
