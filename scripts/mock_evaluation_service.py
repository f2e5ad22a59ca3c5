import os
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import FastAPI, Header, HTTPException

HOST = os.getenv("MOCK_HOST", "127.0.0.1")
PORT = int(os.getenv("MOCK_PORT", "9090"))
TOKEN_TTL_SEC = int(os.getenv("MOCK_TOKEN_TTL_SEC", "300"))

STOCKS = {
    "Apple Inc.": "AAPL",
    "Alphabet Inc. Class A": "GOOGL",
    "Microsoft Corporation": "MSFT",
    "Nvidia Corporation": "NVDA",
    "Tesla, Inc.": "TSLA",
    "PayPal Holdings, Inc.": "PYPL",
}

app = FastAPI(title="Mock evaluation service")
_tokens = set()
_last_price = {t: 100 + random.random() * 400 for t in STOCKS.values()}


def _check(authorization: Optional[str]):
    if not authorization or authorization.removeprefix("Bearer ") not in _tokens:
        raise HTTPException(status_code=401, detail="invalid token")


def _tick(ticker: str, at: datetime):
    # vary price a bit
    _last_price[ticker] = max(1.0, _last_price[ticker] * (1 + random.gauss(0, 0.01)))
    return {"price": round(_last_price[ticker], 4),
            "lastUpdatedAt": at.isoformat().replace("+00:00", "Z")}


@app.post("/evaluation-service/auth")
async def auth(body: dict):
    if not body.get("clientID") or not body.get("clientSecret"):
        raise HTTPException(status_code=401, detail="missing client credentials")
    token = uuid.uuid4().hex
    _tokens.add(token)
    return {"token_type": "Bearer", "access_token": token, "expires_in": TOKEN_TTL_SEC}


@app.get("/evaluation-service/stocks")
async def stocks(authorization: Optional[str] = Header(None)):
    _check(authorization)
    return {"stocks": STOCKS}


@app.get("/evaluation-service/stocks/{ticker}")
async def prices(ticker: str, minutes: Optional[int] = None,
                 authorization: Optional[str] = Header(None)):
    _check(authorization)
    if ticker not in _last_price:
        raise HTTPException(status_code=404, detail=f"unknown ticker {ticker}")
    now = datetime.now(timezone.utc)
    if not minutes:
        return {"stock": _tick(ticker, now)}
    n = random.randint(1, max(1, minutes // 2))
    return [_tick(ticker, now - timedelta(minutes=minutes * (n - i) / n)) for i in range(n)]


if __name__ == "__main__":
    import uvicorn
    print(f"[mock] serving http://{HOST}:{PORT}/evaluation-service. CTRL+C to stop.")
    uvicorn.run(app, host=HOST, port=PORT)
