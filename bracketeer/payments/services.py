"""Service layer for the wallet ledger and the payment gateway."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests
from flask import current_app

from bracketeer.core.constants import (
    NOTIFY_WALLET_CHARGED,
    TRANSACTIONS_COLLECTION,
    TX_CANCELED,
    TX_COMPLETED,
    TX_FAILED,
    TX_PENDING,
    TX_WALLET_CHARGE,
    USERS_COLLECTION,
)
from bracketeer.core.transactions import transaction
from bracketeer.errors import (
    AppError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from bracketeer.extensions import mongo
from bracketeer.notifications.services import NotificationService
from bracketeer.utils import paginate, utcnow

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.client_session import ClientSession
    from pymongo.database import Database

    from bracketeer.core.types import PaginatedResult

    from .models import Transaction

logger = logging.getLogger(__name__)

GATEWAY_OK = 100
GATEWAY_ALREADY_VERIFIED = 101


class WalletService:
    """Moves money in and out of wallets, always inside a caller's transaction."""

    @staticmethod
    def _record(
        db: Database,
        user_id: ObjectId,
        amount: int,
        tx_type: str,
        related_entity_id: ObjectId | None,
        description: str,
        session: ClientSession | None,
    ) -> ObjectId:
        now = utcnow()
        return (
            db[TRANSACTIONS_COLLECTION]
            .insert_one(
                {
                    "user": user_id,
                    "amount": amount,
                    "type": tx_type,
                    "status": TX_COMPLETED,
                    "description": description,
                    "relatedEntityId": related_entity_id,
                    "createdAt": now,
                    "updatedAt": now,
                },
                session=session,
            )
            .inserted_id
        )

    @staticmethod
    def debit(
        db: Database,
        user_id: ObjectId,
        amount: int,
        tx_type: str,
        related_entity_id: ObjectId | None,
        description: str,
        session: ClientSession | None,
    ) -> ObjectId:
        """Take ``amount`` from the wallet if it covers it, and log the movement."""
        result = db[USERS_COLLECTION].update_one(
            {"_id": user_id, "walletBalance": {"$gte": amount}},
            {"$inc": {"walletBalance": -amount}, "$set": {"updatedAt": utcnow()}},
            session=session,
        )
        if result.modified_count == 0:
            raise InsufficientFundsError()
        return WalletService._record(
            db, user_id, amount, tx_type, related_entity_id, description, session
        )

    @staticmethod
    def credit(
        db: Database,
        user_id: ObjectId,
        amount: int,
        tx_type: str,
        related_entity_id: ObjectId | None,
        description: str,
        session: ClientSession | None,
    ) -> ObjectId:
        """Add ``amount`` to the wallet and log the movement."""
        result = db[USERS_COLLECTION].update_one(
            {"_id": user_id},
            {"$inc": {"walletBalance": amount}, "$set": {"updatedAt": utcnow()}},
            session=session,
        )
        if result.matched_count == 0:
            raise NotFoundError("User not found.")
        return WalletService._record(
            db, user_id, amount, tx_type, related_entity_id, description, session
        )

    @staticmethod
    def list_transactions(
        user_id: ObjectId, page: int = 1, limit: int = 10, db: Database | None = None
    ) -> PaginatedResult:
        """List a user's ledger entries, newest first."""
        if db is None:
            db = mongo.db
        return paginate(
            db[TRANSACTIONS_COLLECTION],
            {"user": user_id},
            page,
            limit,
            sort=[("createdAt", -1)],
        )


class PaymentGateway:
    """Thin client for the payment gateway's request and verify calls."""

    def __init__(self, api_base: str, merchant_id: str, timeout: int = 10) -> None:
        self.api_base = api_base.rstrip("/")
        self.merchant_id = merchant_id
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> PaymentGateway:
        merchant_id = current_app.config.get("PAYMENT_MERCHANT_ID")
        if not merchant_id:
            raise AppError("Payment gateway is not configured.", 500)
        return cls(
            current_app.config["PAYMENT_GATEWAY_API_BASE"],
            merchant_id,
            current_app.config.get("PAYMENT_GATEWAY_TIMEOUT", 10),
        )

    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = requests.post(
                f"{self.api_base}/payment/{path}", json=body, timeout=self.timeout
            )
            payload = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Payment gateway call to {path} failed: {e}")
            raise UpstreamError("Could not reach the payment gateway.") from e
        return payload if isinstance(payload, dict) else {}

    def request_payment(
        self, amount: int, description: str, callback_url: str, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        return self._post(
            "request.json",
            {
                "merchant_id": self.merchant_id,
                "amount": amount,
                "description": description,
                "callback_url": callback_url,
                "metadata": metadata,
            },
        )

    def verify_payment(self, authority: str, amount: int) -> dict[str, Any]:
        return self._post(
            "verify.json",
            {"merchant_id": self.merchant_id, "authority": authority, "amount": amount},
        )


def _gateway_error(payload: dict[str, Any]) -> str:
    errors = payload.get("errors")
    if isinstance(errors, dict) and errors.get("message"):
        return str(errors["message"])
    return "Unknown error from payment gateway"


class PaymentService:
    """Wallet top-ups through the external payment gateway."""

    @staticmethod
    def create_charge_request(
        user_id: ObjectId,
        amount: int,
        db: Database | None = None,
        gateway: PaymentGateway | None = None,
    ) -> dict[str, Any]:
        """Open a pending wallet charge and return the gateway redirect URL."""
        if db is None:
            db = mongo.db
        if gateway is None:
            gateway = PaymentGateway.from_config()
        user = db[USERS_COLLECTION].find_one({"_id": user_id}, {"username": 1, "email": 1})
        if user is None:
            raise NotFoundError("User not found.")

        now = utcnow()
        description = f"Wallet charge for user {user.get('username')}"
        tx_id = (
            db[TRANSACTIONS_COLLECTION]
            .insert_one(
                {
                    "user": user_id,
                    "amount": amount,
                    "type": TX_WALLET_CHARGE,
                    "status": TX_PENDING,
                    "description": description,
                    "createdAt": now,
                    "updatedAt": now,
                }
            )
            .inserted_id
        )
        callback_url = (
            f"{current_app.config['SERVER_URL']}/payments/verify?transactionId={tx_id}"
        )
        try:
            payload = gateway.request_payment(
                amount, description, callback_url, {"email": user.get("email")}
            )
            data = payload.get("data") or {}
            if data.get("code") != GATEWAY_OK or not data.get("authority"):
                logger.error(f"Gateway rejected charge {tx_id}: {_gateway_error(payload)}")
                raise UpstreamError("The payment gateway rejected the request.")
        except UpstreamError:
            db[TRANSACTIONS_COLLECTION].update_one(
                {"_id": tx_id}, {"$set": {"status": TX_FAILED, "updatedAt": utcnow()}}
            )
            raise

        authority = data["authority"]
        db[TRANSACTIONS_COLLECTION].update_one(
            {"_id": tx_id}, {"$set": {"authority": authority, "updatedAt": utcnow()}}
        )
        redirect_base = current_app.config["PAYMENT_GATEWAY_REDIRECT_URL"].rstrip("/")
        return {
            "transactionId": tx_id,
            "authority": authority,
            "paymentUrl": f"{redirect_base}/{authority}",
        }

    @staticmethod
    def verify_charge(
        authority: str,
        status: str,
        transaction_id: ObjectId,
        db: Database | None = None,
        gateway: PaymentGateway | None = None,
    ) -> dict[str, Any]:
        """Confirm a returning payment and credit the wallet exactly once."""
        if db is None:
            db = mongo.db
        transactions = db[TRANSACTIONS_COLLECTION]
        if status != "OK":
            transactions.update_one(
                {"_id": transaction_id, "status": TX_PENDING},
                {"$set": {"status": TX_CANCELED, "updatedAt": utcnow()}},
            )
            raise ValidationError("The payment was canceled by the user.")

        tx: Transaction | None = transactions.find_one(
            {"_id": transaction_id, "authority": authority}
        )
        if tx is None:
            raise NotFoundError("Transaction not found.")
        if tx["status"] != TX_PENDING:
            raise InvalidStateError("This transaction has already been processed.")

        if gateway is None:
            gateway = PaymentGateway.from_config()
        payload = gateway.verify_payment(authority, tx["amount"])
        data = payload.get("data") or {}
        code = data.get("code")

        if code == GATEWAY_ALREADY_VERIFIED:
            logger.warning(f"Payment for transaction {transaction_id} was already verified.")
            return {"refId": tx.get("refId")}
        if code != GATEWAY_OK:
            raise ValidationError(f"Payment verification failed: {_gateway_error(payload)}")

        ref_id = str(data.get("ref_id"))
        with transaction(db) as session:
            claimed = transactions.update_one(
                {"_id": transaction_id, "status": TX_PENDING},
                {"$set": {"status": TX_COMPLETED, "refId": ref_id, "updatedAt": utcnow()}},
                session=session,
            )
            if claimed.modified_count == 0:
                raise InvalidStateError("This transaction has already been processed.")
            db[USERS_COLLECTION].update_one(
                {"_id": tx["user"]},
                {"$inc": {"walletBalance": tx["amount"]}, "$set": {"updatedAt": utcnow()}},
                session=session,
            )

        logger.info(f"Wallet of {tx['user']} credited {tx['amount']} (ref {ref_id})")
        NotificationService.send(
            tx["user"],
            NOTIFY_WALLET_CHARGED,
            {"amount": tx["amount"], "refId": ref_id},
            transaction_id,
            "Transaction",
            db,
        )
        return {"refId": ref_id}
