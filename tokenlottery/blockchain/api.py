import os
import logging
from urllib.parse import quote, urljoin
from dotenv import load_dotenv
from .interfaces import CommitmentInfo, TicketProof
from .utils import open_session, get_jwt_token, parse_reveal_value
from ..errors import InsufficientFunds, LedgerError
from typing import TYPE_CHECKING, Any, Optional, Mapping

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class ChainClient:
    """HTTP client for the chain gateway.

    One client serves as the lottery's clock, randomness oracle, asset
    registry and payment ledger, so it can be passed for every collaborator
    of :class:`tokenlottery.lottery.LotteryEngine`.
    """

    def __init__(self, base_fqdn: Optional[str] = None, timeout: int = 45):
        load_dotenv()
        fqdn = base_fqdn or os.getenv("BLOCKCHAIN_BASE_FQDN")
        if not fqdn:
            raise ValueError("Environment variable 'BLOCKCHAIN_BASE_FQDN' is not set")

        self.base_url = f"https://{fqdn}".rstrip("/")
        session_info = open_session(fqdn)
        if not session_info or len(session_info) != 2:
            raise ValueError("open_session() must return (session, csrf_token)")
        self.session, self.csrf = session_info
        self.jwt = get_jwt_token(self.session, fqdn)
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ChainClient":
        return cls(base_fqdn=settings.chain_fqdn, timeout=settings.chain_timeout)

    # -------- headers --------
    @property
    def public_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json"}

    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.jwt}"}

    @property
    def auth_csrf_headers(self) -> Mapping[str, str]:
        return {**self.auth_headers, "X-CSRFTOKEN": self.csrf}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        allow_not_found: bool = False,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=headers or self.public_headers,
            params=params,
            json=json,
            timeout=self.timeout,
        )
        if allow_not_found and r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json() if r.content else None

    # -------- clock --------
    def current_height(self) -> int:
        payload = self._request("GET", "/api/v1/chain/height")
        return int(payload["height"])

    # -------- randomness oracle --------
    def create_commitment(self, lottery_ref: str) -> str:
        payload = self._request(
            "POST",
            "/api/v1/randomness/commitments",
            json={"lottery_ref": lottery_ref},
            headers=self.auth_csrf_headers,
        )
        return payload["commitment_id"]

    def _commitment(self, commitment_id: str) -> Optional[dict]:
        return self._request(
            "GET",
            f"/api/v1/randomness/commitments/{quote(commitment_id, safe='')}",
            headers=self.auth_headers,
            allow_not_found=True,
        )

    def get_commitment(self, commitment_id: str) -> Optional[CommitmentInfo]:
        payload = self._commitment(commitment_id)
        if payload is None:
            return None
        return CommitmentInfo(
            commitment_id=payload["commitment_id"],
            lottery_ref=payload["lottery_ref"],
            created_height=int(payload["created_height"]),
        )

    def get_reveal_value(self, commitment_id: str) -> Optional[int]:
        payload = self._commitment(commitment_id)
        if payload is None or payload.get("status") != "revealed":
            return None
        return parse_reveal_value(payload["value"])

    # -------- asset registry --------
    def create_collection(self, authority: str, lottery_ref: str) -> str:
        from ..constants import COLLECTION_NAME, COLLECTION_SYMBOL, COLLECTION_URI

        payload = self._request(
            "POST",
            "/api/v1/assets/collections",
            json={
                "authority": authority,
                "lottery_ref": lottery_ref,
                "name": COLLECTION_NAME,
                "symbol": COLLECTION_SYMBOL,
                "uri": COLLECTION_URI,
            },
            headers=self.auth_csrf_headers,
        )
        return payload["collection_ref"]

    def mint(self, owner: str, collection_ref: str, sequence_number: int) -> str:
        from ..constants import TICKET_SYMBOL, TICKET_URI
        from ..lottery.numbering import ticket_label

        payload = self._request(
            "POST",
            "/api/v1/assets/mint",
            json={
                "owner": owner,
                "collection_ref": collection_ref,
                "sequence_number": sequence_number,
                "name": ticket_label(sequence_number),
                "symbol": TICKET_SYMBOL,
                "uri": TICKET_URI,
            },
            headers=self.auth_csrf_headers,
        )
        return payload["asset_id"]

    def _asset(self, asset_id: str) -> Optional[dict]:
        return self._request(
            "GET",
            f"/api/v1/assets/{quote(asset_id, safe='')}",
            headers=self.auth_headers,
            allow_not_found=True,
        )

    def balance_of(self, owner: str, asset_id: str) -> int:
        payload = self._request(
            "GET",
            f"/api/v1/assets/{quote(asset_id, safe='')}/balance",
            params={"owner": owner},
            headers=self.auth_headers,
            allow_not_found=True,
        )
        if payload is None:
            return 0
        return int(payload.get("balance", 0))

    def membership_proof(self, asset_id: str) -> Optional[str]:
        payload = self._asset(asset_id)
        if payload is None:
            return None
        collection = payload.get("collection") or {}
        if not collection.get("verified"):
            return None
        return collection.get("ref")

    def ticket_proof(self, asset_id: str) -> TicketProof:
        payload = self._asset(asset_id)
        if payload is None:
            raise KeyError(asset_id)
        return TicketProof(asset_id=payload["asset_id"], label=payload["name"])

    # -------- payment ledger --------
    def transfer(self, source: str, destination: str, amount: int) -> None:
        payload = self._request(
            "POST",
            "/api/v1/ledger/transfer",
            json={"from": source, "to": destination, "amount": amount},
            headers=self.auth_csrf_headers,
        )
        status = (payload or {}).get("status")
        if status == "success":
            logger.debug("Ledger transfer of %d from %s to %s applied", amount, source, destination)
            return
        message = (payload or {}).get("message")
        if status == "insufficient_funds":
            raise InsufficientFunds(message)
        raise LedgerError(
            "Ledger transfer failed" + (f": {message}" if message else ".")
        )
