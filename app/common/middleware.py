"""
Middleware for handling multi-tenancy
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Extrae el tenant del header X-Tenant-ID (si viene) y lo deja en
    request.state.tenant_id. La pertenencia del usuario al tenant se valida
    luego en las dependencias de autenticación.
    """

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)

        tenant_header = request.headers.get(TENANT_HEADER)
        request.state.tenant_id = None

        if tenant_header:
            try:
                request.state.tenant_id = UUID(tenant_header)
            except ValueError:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"detail": f"Formato de {TENANT_HEADER} inválido. Debe ser un UUID"}
                )
            logger.debug(f"Request to {request.url.path} with tenant_id: {request.state.tenant_id}")

        response = await call_next(request)

        if request.state.tenant_id:
            response.headers[TENANT_HEADER] = str(request.state.tenant_id)

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers for production
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
