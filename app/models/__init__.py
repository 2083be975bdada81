# Parking lot backend: database models
# Import all models here for SQLAlchemy discovery

from app.models.parking_lot import ParkingLot          # noqa
from app.models.parking_space import ParkingSpace      # noqa
from app.models.transaction import Transaction         # noqa
from app.models.pricing import PricingSetting          # noqa
from app.models.customer import Customer               # noqa
