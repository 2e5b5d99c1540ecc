# shopcore/services/sequence_service.py
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.domain.order_number import format_order_number, parse_order_number
from shopcore.repos.counter_repo import CounterRepo
from shopcore.utils.settings import ORDER_NUMBER_PREFIX, ORDER_NUMBER_WIDTH, ORDER_SEQUENCE_NAME
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class SequenceService:
    """
    Numeracja zamowien.
    Unikalnosc opiera sie wylacznie na atomowym inkremencie w bazie,
    numer nigdy nie jest liczony po stronie aplikacji (np. count() + 1).
    """

    def __init__(
        self,
        db: Session,
        name: str | None = None,
        prefix: str | None = None,
        width: int | None = None,
    ):
        self.repo = CounterRepo(db)
        self.name = name or ORDER_SEQUENCE_NAME
        self.prefix = (prefix or ORDER_NUMBER_PREFIX).upper()
        self.width = width or ORDER_NUMBER_WIDTH

    def next_sequence(self, name: str | None = None) -> int:
        name = name or self.name
        try:
            value = self.repo.increment(name)

            if value is None:
                # pierwszy numer dla tej sekwencji, upsert
                try:
                    self.repo.insert(name, 1)
                    value = 1
                except IntegrityError:
                    # ktos inny wstawil licznik rownolegle, ponow inkrement
                    self.repo.rollback()
                    value = self.repo.increment(name)
                    if value is None:
                        raise RuntimeError(f"Sequence counter {name} disappeared during allocation")

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Allocated sequence {name}={value}")
        return value

    def next_order_number(self, now: datetime | None = None) -> str:
        year = (now or datetime.now(timezone.utc)).year
        return format_order_number(self.prefix, year, self.next_sequence(), self.width)

    def sync_counter(self, name: str | None = None) -> int:
        """
        Naprawa licznika po imporcie / recznej korekcie:
        licznik = max(sekwencja z istniejacych numerow zamowien).
        Kolejny przydzielony numer to max + 1.
        """
        name = name or self.name
        max_seq = 0

        numbers = self.repo.all_order_numbers()
        for number in numbers:
            parsed = parse_order_number(number)
            if parsed is None:
                logger.warning(f"Skipping unparseable order number {number}")
                continue
            max_seq = max(max_seq, parsed.sequence)

        try:
            self.repo.set_value(name, max_seq)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Counter {name} synced to {max_seq} from {len(numbers)} orders")
        return max_seq
