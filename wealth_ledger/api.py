"""
FastAPI REST API Module

Exposes the ledger and the yield engine over HTTP: asset management, yield
calculation, portfolio summary and bulk import/export.
"""

from datetime import date
from typing import Callable, Optional
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field
import uvicorn

from .config import WealthLedgerConfig, get_config
from .errors import NotFoundError, ValidationError
from .interchange import export_backup, export_csv, import_backup, import_csv
from .ledger import LedgerStore
from .logging_config import setup_logging
from .storage import StorageInterface, create_storage
from .yield_engine import YieldEngine
from . import __version__


class CreateAssetRequest(BaseModel):
    name: str
    type: str = Field(..., description="Asset type code (stock, fund, deposit, ...)")
    initial_amount: str = Field(..., description="Decimal amount as string")
    interest_rate: str = Field("0", description="Annual rate in percent, as string")
    investment_date: Optional[str] = None  # ISO date string
    description: Optional[str] = None


class UpdateAssetRequest(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    interest_rate: Optional[str] = None
    investment_date: Optional[str] = None
    description: Optional[str] = None
    current_value: Optional[str] = None


class WealthSystem:
    """Ledger, storage and engine wired together from configuration"""

    def __init__(
        self,
        config: Optional[WealthLedgerConfig] = None,
        storage: Optional[StorageInterface] = None,
        clock: Callable[[], date] = date.today
    ):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.storage_url)
        self.ledger = LedgerStore(
            self.storage,
            assets_key=self.config.assets_key,
            yield_records_key=self.config.yield_records_key,
            today=clock
        )
        self.engine = YieldEngine(self.ledger, clock=clock, precision=self.config.value_precision)
        self.load_result = self.ledger.load_state()

    def close(self) -> None:
        self.storage.close()


router = APIRouter()


def get_system(request: Request) -> WealthSystem:
    return request.app.state.system


@router.get("/health")
async def health_check(system: WealthSystem = Depends(get_system)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": __version__,
        "assets": len(system.ledger),
        "state_loaded": system.load_result.success,
    }


@router.post("/assets", status_code=status.HTTP_201_CREATED)
async def create_asset(request: CreateAssetRequest, system: WealthSystem = Depends(get_system)):
    """Create a new asset"""
    try:
        asset = system.ledger.add_asset(
            name=request.name,
            asset_type=request.type,
            initial_amount=request.initial_amount,
            interest_rate=request.interest_rate,
            investment_date=request.investment_date,
            description=request.description
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return asset.to_dict()


@router.get("/assets")
async def list_assets(system: WealthSystem = Depends(get_system)):
    """List all assets"""
    return {"assets": [asset.to_dict() for asset in system.ledger.list_assets()]}


@router.get("/assets/{asset_id}")
async def get_asset(asset_id: str, system: WealthSystem = Depends(get_system)):
    """Get asset details"""
    try:
        asset = system.ledger.require_asset(asset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    result = asset.to_dict()
    result["daysSinceInvestment"] = system.engine.days_since_investment(asset)
    return result


@router.patch("/assets/{asset_id}")
async def update_asset(asset_id: str, request: UpdateAssetRequest,
                       system: WealthSystem = Depends(get_system)):
    """Update fields of an asset"""
    changes = request.model_dump(exclude_unset=True)
    if "type" in changes:
        changes["asset_type"] = changes.pop("type")

    try:
        asset = system.ledger.update_asset(asset_id, **changes)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if asset is None:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset.to_dict()


@router.delete("/assets/{asset_id}")
async def delete_asset(asset_id: str, system: WealthSystem = Depends(get_system)):
    """Delete an asset and its yield history"""
    if not system.ledger.delete_asset(asset_id):
        raise HTTPException(status_code=404, detail="Asset not found")
    return {"message": "Asset deleted successfully"}


@router.get("/assets/{asset_id}/yields")
async def get_asset_yields(asset_id: str, system: WealthSystem = Depends(get_system)):
    """Yield history of an asset, newest first"""
    if asset_id not in system.ledger:
        raise HTTPException(status_code=404, detail="Asset not found")
    records = system.ledger.yield_records_for_asset(asset_id)
    return {"yieldRecords": [record.to_dict() for record in records]}


@router.post("/assets/{asset_id}/yield")
async def calculate_asset_yield(asset_id: str, system: WealthSystem = Depends(get_system)):
    """Recalculate one asset's value"""
    outcome = system.engine.calculate_yield(asset_id)
    if outcome is None:
        raise HTTPException(status_code=404, detail="Asset not found")

    return {
        "assetId": outcome.asset_id,
        "days": outcome.days,
        "previousValue": str(outcome.previous_value),
        "newValue": str(outcome.new_value),
        "yieldAmount": str(outcome.yield_amount),
        "yieldRate": str(outcome.yield_rate),
        "record": outcome.record.to_dict() if outcome.record else None,
    }


@router.get("/assets/{asset_id}/projection")
async def project_asset_yield(asset_id: str, days: int = Query(30, ge=0),
                              system: WealthSystem = Depends(get_system)):
    """Expected gain if the current value compounds for more days"""
    try:
        expected = system.engine.project_yield(asset_id, days)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"assetId": asset_id, "days": days, "expectedYield": str(expected)}


@router.post("/yields/calculate")
async def calculate_all_yields(system: WealthSystem = Depends(get_system)):
    """Recalculate every asset"""
    result = system.engine.calculate_all_yields()
    return {
        "calculated": len(result.outcomes),
        "recordsCreated": result.records_created,
        "failures": result.failures,
    }


@router.get("/summary")
async def get_summary(system: WealthSystem = Depends(get_system)):
    """Portfolio totals and per-type breakdown"""
    return system.engine.get_summary().to_dict()


@router.get("/export/json")
async def export_json(system: WealthSystem = Depends(get_system)):
    """Full backup of assets and yield records"""
    return export_backup(system.ledger, version=system.config.backup_format_version)


@router.get("/export/csv")
async def export_tabular(system: WealthSystem = Depends(get_system)):
    """Asset table as CSV"""
    return Response(content=export_csv(system.ledger), media_type="text/csv; charset=utf-8")


@router.post("/import/json")
async def import_json(request: Request, system: WealthSystem = Depends(get_system)):
    """Add the assets of a backup document"""
    body = await request.body()
    try:
        result = import_backup(system.ledger, body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


@router.post("/import/csv")
async def import_tabular(request: Request, system: WealthSystem = Depends(get_system)):
    """Add the assets of a CSV table"""
    body = await request.body()
    try:
        result = import_csv(system.ledger, body)
    except (ValidationError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


@router.delete("/data")
async def clear_data(system: WealthSystem = Depends(get_system)):
    """Remove every asset and yield record"""
    result = system.ledger.clear_all()
    return {"cleared": True, "persisted": result.success, "errors": result.errors}


def create_app(system: Optional[WealthSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Wealth Ledger API",
        description="Asset ledger with daily compound yield calculation",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.system = system or WealthSystem()
    app.include_router(router)
    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    uvicorn.run(
        "wealth_ledger.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level="info"
    )
