import uvicorn
import structlog
from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from payment_api.config import get_settings
from payment_api.database import init_db, close_db, get_session
from payment_api.exceptions import PaymentError
from payment_api.logging_config import setup_logging
from payment_api.repository import SqlAlchemyPaymentRepository
from payment_api.schemas import PaymentCreate, PaymentRead, ErrorResponse
from payment_api.service import PaymentService

logger = structlog.get_logger(__name__)

app = FastAPI(title="Payment API")

ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (400, 404, 409, 500)
}


@app.on_event("startup")
async def startup_event():
    setup_logging()
    await init_db()
    logger.info("application_startup")


@app.on_event("shutdown")
async def shutdown_event():
    await close_db()
    logger.info("application_shutdown")


def error_response(code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=code, content={"code": code, "error": message})


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "invalid request"
    logger.info("request_rejected", path=request.url.path, error=message)
    return error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


def get_payment_service(db: AsyncSession = Depends(get_session)) -> PaymentService:
    return PaymentService(SqlAlchemyPaymentRepository(db))


@app.get("/api/v1/payments", response_model=list[PaymentRead], responses=ERROR_RESPONSES)
async def get_payments(service: PaymentService = Depends(get_payment_service)):
    payments = await service.list_payments()
    return [PaymentRead.model_validate(payment) for payment in payments]


@app.get("/api/v1/payments/uid/{uid}", response_model=PaymentRead, responses=ERROR_RESPONSES)
async def get_payment(uid: str, service: PaymentService = Depends(get_payment_service)):
    payment = await service.get_payment(uid)
    return PaymentRead.model_validate(payment)


@app.post("/api/v1/payments", response_model=PaymentRead, status_code=201, responses=ERROR_RESPONSES)
async def create_payment(payment_data: PaymentCreate, service: PaymentService = Depends(get_payment_service)):
    payment = await service.create_payment(payment_data)
    return PaymentRead.model_validate(payment)


@app.patch("/api/v1/payments/uid/{uid}/processed", response_model=PaymentRead, responses=ERROR_RESPONSES)
async def mark_payment_processed(uid: str, service: PaymentService = Depends(get_payment_service)):
    payment = await service.mark_processed(uid)
    return PaymentRead.model_validate(payment)


@app.delete("/api/v1/payments/uid/{uid}", status_code=204, response_class=Response, responses=ERROR_RESPONSES)
async def delete_payment(uid: str, service: PaymentService = Depends(get_payment_service)):
    await service.delete_payment(uid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def run():
    settings = get_settings()
    uvicorn.run(app, host=settings.server_host, port=settings.server_port)


if __name__ == "__main__":
    run()
