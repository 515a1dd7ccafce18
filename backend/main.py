# backend/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from config import get_settings
from database import init_db

load_dotenv()

from routes.addresses import router as addresses_router
from routes.cart import router as cart_router
from routes.checkout import router as checkout_router
from routes.orders import router as orders_router
from routes.shipping import router as shipping_router
from routes.subscriptions import router as subscriptions_router
from routes.webhooks import router as webhooks_router

settings = get_settings()
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

init_db()

app = FastAPI(title="Storefront API", version="1.0.0")

origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(addresses_router)
app.include_router(cart_router)
app.include_router(shipping_router)
app.include_router(subscriptions_router)
app.include_router(checkout_router)
app.include_router(orders_router)
app.include_router(webhooks_router)

@app.get("/")
def read_root():
    return {"message": "Storefront API is running"}
