from datetime import time

from sqlalchemy import select

from .core.config import get_settings
from .models import Salon, SalonHours, Service, Stylist, StylistSchedule


settings = get_settings()

DEMO_SALON_ID = "demo"

# weekday (0 = Monday) -> opening intervals; Sunday closed
DEMO_SALON_HOURS = {
    0: [(time(9), time(12)), (time(13), time(18))],
    1: [(time(9), time(18))],
    2: [(time(9), time(18))],
    3: [(time(9), time(18))],
    4: [(time(9), time(18))],
    5: [(time(10), time(16))],
}


async def seed_initial_data(session):
    salon = await session.get(Salon, DEMO_SALON_ID)

    if not salon:
        salon = Salon(id=DEMO_SALON_ID, name=settings.default_salon_name)
        session.add(salon)
        await session.flush()

        for weekday, spans in DEMO_SALON_HOURS.items():
            session.add_all(
                [
                    SalonHours(salon_id=salon.id, weekday=weekday, open_time=start, close_time=end)
                    for start, end in spans
                ]
            )

    # Seed services if missing
    result = await session.execute(select(Service).where(Service.salon_id == salon.id))
    services = result.scalars().all()
    if not services:
        session.add_all(
            [
                Service(id="haircut", salon_id=salon.id, name="Haircut", duration_minutes=30, price_cents=3500),
                Service(id="color", salon_id=salon.id, name="Color", duration_minutes=90, price_cents=9000),
                # No stored duration: booked with the default duration
                Service(id="consultation", salon_id=salon.id, name="Consultation", duration_minutes=None),
            ]
        )

    result = await session.execute(select(Stylist).where(Stylist.salon_id == salon.id))
    stylists = result.scalars().all()
    if not stylists:
        session.add_all(
            [
                Stylist(id="alex", salon_id=salon.id, name="Alex", active=True),
                Stylist(id="sam", salon_id=salon.id, name="Sam", active=True),
            ]
        )
        await session.flush()
        session.add_all(
            [StylistSchedule(stylist_id="alex", weekday=d, start_time=time(9), end_time=time(17)) for d in range(0, 6)]
            + [StylistSchedule(stylist_id="sam", weekday=d, start_time=time(10), end_time=time(18)) for d in range(1, 6)]
        )

    await session.commit()
