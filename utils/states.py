"""FSM состояния"""

from aiogram.fsm.state import State, StatesGroup


class BookingStates(StatesGroup):
    """Состояния для записи клиента"""

    choosing_professional = State()
    choosing_service = State()
    choosing_date = State()
    choosing_time = State()
    confirming = State()


class ProStates(StatesGroup):
    """Состояния для панели специалиста"""

    awaiting_display_name = State()
    awaiting_hourly_rate = State()
    awaiting_reject_reason = State()
