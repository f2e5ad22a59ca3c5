import os
from dataclasses import dataclass
from typing import Dict, List, Optional
from dotenv import load_dotenv

load_dotenv()

UPSTREAM_BASE_URL = os.getenv(
    "UPSTREAM_BASE_URL", "http://20.244.56.144/evaluation-service")
_timeout = os.getenv("UPSTREAM_TIMEOUT_SEC")
UPSTREAM_TIMEOUT_SEC: Optional[float] = float(_timeout) if _timeout else None

DIRECTORY_TTL_SEC = int(os.getenv("DIRECTORY_TTL_SEC", "300"))
MATRIX_MAX_TICKERS = int(os.getenv("MATRIX_MAX_TICKERS", "5"))

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

REQUIRED_ENV_VARS = ("CLIENT_ID", "CLIENT_SECRET",
                     "EMAIL", "NAME", "ROLL_NO", "ACCESS_CODE")


@dataclass(frozen=True)
class Credentials:
    client_id: str = ""
    client_secret: str = ""
    email: str = ""
    name: str = ""
    roll_no: str = ""
    access_code: str = ""

    def is_complete(self) -> bool:
        return all((self.client_id, self.client_secret, self.email,
                    self.name, self.roll_no, self.access_code))

    def auth_payload(self) -> Dict[str, str]:
        return {
            "email": self.email,
            "name": self.name,
            "rollNo": self.roll_no,
            "accessCode": self.access_code,
            "clientID": self.client_id,
            "clientSecret": self.client_secret,
        }


def missing_env_vars() -> List[str]:
    return [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]


def load_credentials() -> Credentials:
    return Credentials(
        client_id=os.getenv("CLIENT_ID", ""),
        client_secret=os.getenv("CLIENT_SECRET", ""),
        email=os.getenv("EMAIL", ""),
        name=os.getenv("NAME", ""),
        roll_no=os.getenv("ROLL_NO", ""),
        access_code=os.getenv("ACCESS_CODE", ""),
    )
