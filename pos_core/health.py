"""
Health and readiness probes for the POS service.

Liveness is answered without touching any dependency; readiness checks the
order database and the host itself.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from typing import Dict, Any, Optional
import os
import time
from datetime import datetime
from enum import Enum
import psutil
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


class ServiceHealth:
    """Builds the /health, /health/* and /metrics routes for one service."""

    def __init__(self, service_name: str, version: str = "1.0.0", engine: Optional[Engine] = None):
        self.service_name = service_name
        self.version = version
        self.engine = engine
        self.start_time = time.time()
        self.checks_performed = 0
        self.last_check_time = None

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health", status_code=status.HTTP_200_OK)
        async def health_check() -> Dict[str, Any]:
            """Liveness probe used by load balancers; no dependency checks."""
            return {
                "status": HealthStatus.PASS,
                "service": self.service_name,
                "version": self.version,
                "releaseId": os.getenv("RELEASE_ID", "unknown"),
                "timestamp": _now()
            }

        @router.get("/health/live", status_code=status.HTTP_200_OK)
        async def liveness() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        async def readiness() -> JSONResponse:
            checks = self._perform_readiness_checks()
            overall_status = self._calculate_overall_status(checks)
            status_code = (
                status.HTTP_200_OK if overall_status != HealthStatus.FAIL
                else status.HTTP_503_SERVICE_UNAVAILABLE
            )
            return JSONResponse(status_code=status_code, content={
                "status": overall_status,
                "version": self.version,
                "releaseId": os.getenv("RELEASE_ID", "unknown"),
                "checks": checks,
                "serviceId": self.service_name,
                "timestamp": _now()
            })

        @router.get("/health/startup")
        async def startup() -> Any:
            checks = {
                "database:migrations": self._check_migrations(),
                "config:environment": self._check_environment(),
            }
            if self._calculate_overall_status(checks) == HealthStatus.FAIL:
                return JSONResponse(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    content={"status": "starting", "checks": checks}
                )
            return {"status": "started", "checks": checks}

        @router.get("/metrics")
        async def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            memory = process.memory_info()
            return {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": time.time() - self.start_time,
                "checks_performed": self.checks_performed,
                "timestamp": _now(),
                "system": {
                    "memory_rss_bytes": memory.rss,
                    "memory_vms_bytes": memory.vms,
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads()
                }
            }

        return router

    def _perform_readiness_checks(self) -> Dict[str, Dict[str, Any]]:
        self.checks_performed += 1
        self.last_check_time = time.time()

        return {
            "database:connectivity": self._check_database(),
            "system:memory": self._check_memory(),
        }

    def _check_database(self) -> Dict[str, Any]:
        if self.engine is None:
            return {"status": HealthStatus.WARN, "componentType": "datastore",
                    "output": "No engine configured", "time": _now()}
        try:
            start_time = time.time()
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            response_time = (time.time() - start_time) * 1000
            return {
                "status": HealthStatus.PASS,
                "componentType": "datastore",
                "observedValue": f"{response_time:.2f}ms",
                "observedUnit": "ms",
                "time": _now()
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": HealthStatus.FAIL, "componentType": "datastore",
                    "output": str(e), "time": _now()}

    def _check_memory(self) -> Dict[str, Any]:
        try:
            available_mb = psutil.virtual_memory().available / (1024 ** 2)
            if available_mb < 100:
                status_val = HealthStatus.FAIL
            elif available_mb < 500:
                status_val = HealthStatus.WARN
            else:
                status_val = HealthStatus.PASS
            return {
                "status": status_val,
                "componentType": "system",
                "observedValue": f"{available_mb:.2f}",
                "observedUnit": "MB",
                "time": _now()
            }
        except Exception as e:
            return {"status": HealthStatus.WARN, "componentType": "system",
                    "output": str(e), "time": _now()}

    def _check_migrations(self) -> Dict[str, Any]:
        """Pass once alembic has stamped the database."""
        if self.engine is None:
            return {"status": HealthStatus.WARN, "componentType": "datastore",
                    "output": "No engine configured", "time": _now()}
        try:
            if inspect(self.engine).has_table("alembic_version"):
                return {"status": HealthStatus.PASS, "componentType": "datastore", "time": _now()}
            return {"status": HealthStatus.WARN, "componentType": "datastore",
                    "output": "Migrations table not found", "time": _now()}
        except Exception as e:
            return {"status": HealthStatus.FAIL, "componentType": "datastore",
                    "output": str(e), "time": _now()}

    def _check_environment(self) -> Dict[str, Any]:
        if os.getenv("DATABASE_URL"):
            return {"status": HealthStatus.PASS, "componentType": "configuration", "time": _now()}

        required_vars = ["POSTGRES_HOST", "POSTGRES_DB", "POSTGRES_USER", "POSTGRES_PASSWORD"]
        missing = [var for var in required_vars if not os.getenv(var)]
        if missing:
            return {
                "status": HealthStatus.WARN,
                "componentType": "configuration",
                "output": f"Using defaults for: {', '.join(missing)}",
                "time": _now()
            }
        return {"status": HealthStatus.PASS, "componentType": "configuration", "time": _now()}

    def _calculate_overall_status(self, checks: Dict[str, Dict[str, Any]]) -> HealthStatus:
        statuses = [check.get("status", HealthStatus.PASS) for check in checks.values()]
        if HealthStatus.FAIL in statuses:
            return HealthStatus.FAIL
        if HealthStatus.WARN in statuses:
            return HealthStatus.WARN
        return HealthStatus.PASS
