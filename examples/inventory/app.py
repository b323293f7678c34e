"""Inventory — a small JSON API for a vehicle lot.

Demonstrates the pieces of a typical wren app working together: body
parsing with a size limit, CORS for a separate dashboard origin, static
files for the dashboard itself, a versioned ``Router`` mounted under
``/v1``, and the JSON error handler registered last.

Run:
    uvicorn examples.inventory.app:app
"""

import itertools
import threading
from dataclasses import asdict, dataclass
from pathlib import Path

from wren import App, HTTPError, NotFound, Router, cors, error_handler, json, static

PUBLIC = Path(__file__).parent / "public"

app = App()
app.use(json(limit="64kb"))
app.use(cors(origin=True, credentials=True))
app.use(static(PUBLIC))


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Unit:
    id: int
    vin: str
    make: str
    price: int


_units: dict[int, Unit] = {}
_ids = itertools.count(1)
_lock = threading.Lock()


def _next_id() -> int:
    return next(_ids)


def _find(unit_id: str) -> Unit:
    with _lock:
        unit = _units.get(int(unit_id)) if unit_id.isdigit() else None
    if unit is None:
        raise NotFound(f"Unit {unit_id} not found")
    return unit


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

api = Router()


def request_id(req, res, next):
    """Echo the caller's request id back on every API response."""
    rid = req.get("x-request-id")
    if rid:
        req.state["request_id"] = rid
        res.set("X-Request-Id", rid)
    next()


api.use(request_id)


@api.get("/inventory")
async def list_units(req, res, next):
    make = req.query.get("make")
    with _lock:
        units = sorted(_units.values(), key=lambda u: u.id)
    if make:
        units = [u for u in units if u.make.lower() == str(make).lower()]
    await res.json({"data": [asdict(u) for u in units]})


def validate_unit(req, res, next):
    body = req.body
    missing = [name for name in ("vin", "make", "price") if name not in body]
    if missing:
        raise HTTPError(
            422, "Missing required fields", code="VALIDATION_FAILED", details={"missing": missing}
        )
    if not isinstance(body["price"], int) or body["price"] < 0:
        raise HTTPError(422, "Price must be a non-negative integer", code="VALIDATION_FAILED")
    next()


async def create_unit(req, res, next):
    body = req.body
    with _lock:
        if any(u.vin == body["vin"] for u in _units.values()):
            raise HTTPError(409, f"VIN {body['vin']} already listed", code="DUPLICATE_VIN")
        unit = Unit(id=_next_id(), vin=body["vin"], make=body["make"], price=body["price"])
        _units[unit.id] = unit
    location = f"/v1/inventory/{unit.id}"
    await res.status(201).set("Location", location).json({"data": asdict(unit)})


api.post("/inventory", validate_unit, create_unit)


@api.get("/inventory/:id")
async def get_unit(req, res, next):
    await res.json({"data": asdict(_find(req.params["id"]))})


@api.delete("/inventory/:id")
async def delete_unit(req, res, next):
    unit = _find(req.params["id"])
    with _lock:
        _units.pop(unit.id, None)
    res.status(204)
    await res.end()


app.use("/v1", api)
app.use(error_handler)
