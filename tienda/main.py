# tienda/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tienda.api.v1.routes import (
    cart,
    categories,
    orders,
    payments,
    products,
    reviews,
    users,
    webhooks,
    whatsapp,
)
from tienda.core.config import settings
from tienda.core.errors import TiendaError, tienda_error_handler
from tienda.db.database import close_mongo_connection, connect_to_mongo

logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,  # Las URLs del frontend
    allow_credentials=True,
    # Permite todos los métodos (GET, POST, PUT, DELETE, etc.)
    allow_methods=["*"],
    allow_headers=["*"],  # Permite todos los encabezados
)

app.add_exception_handler(TiendaError, tienda_error_handler)

# Rutas que consume el frontend y Mercado Pago
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["Webhooks"])
app.include_router(whatsapp.router, prefix="/api/whatsapp", tags=["WhatsApp"])

# Incluir las rutas de los endpoints
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(categories.router, prefix="/api/v1/categories", tags=["Categories"])
app.include_router(cart.router, prefix="/api/v1/cart", tags=["Cart"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(reviews.router, prefix="/api/v1/reviews", tags=["Reviews"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])


@app.get("/")
async def ping():
    return {"message": "Pong"}


@app.on_event("startup")
async def startup_db_client():
    await connect_to_mongo()


@app.on_event("shutdown")
async def shutdown_db_client():
    await close_mongo_connection()
