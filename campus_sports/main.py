import logging

from fastapi import FastAPI

from campus_sports.core.config import get_settings
from campus_sports.core.errors import register_error_handlers
from campus_sports.database import create_db_and_tables
from campus_sports.routers import auth, users, universities, facilities
from campus_sports.routers import bookings, schedules
from campus_sports.routers import payments
from campus_sports.routers import statistics

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Campus Sports")
register_error_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(universities.router)
app.include_router(facilities.router)
app.include_router(bookings.router)
app.include_router(schedules.router)
app.include_router(payments.router)
app.include_router(statistics.router)


@app.on_event("startup")
def on_startup():
    create_db_and_tables()


@app.get("/")
def root():
    return {"message": "campus_sports API running"}
