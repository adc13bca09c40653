# ===== agendando/webhooks/router.py =====
from fastapi import APIRouter

webhook_router = APIRouter()

# Import handlers inside a function to avoid circular imports
def register_handlers():
    from agendando.webhooks import mercadopago_handler
    webhook_router.include_router(mercadopago_handler.router, prefix="/mercadopago")

register_handlers()

@webhook_router.get("/")
async def webhook_info():
    return {
        "endpoints": {
            "mercadopago_payments": "/webhooks/mercadopago?host_id=<host id>",
        },
        "note": "Payment notifications are POSTed by MercadoPago"
    }
