# shopcore/repos/counter_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.data.models.sequence_counter import SequenceCounterModel


class CounterRepo:
    def __init__(self, db: Session):
        self.db = db

    def increment(self, name: str) -> int | None:
        # atomowe UPDATE ... RETURNING, odpowiednik findAndModify $inc
        return self.db.execute(
            update(SequenceCounterModel)
            .where(SequenceCounterModel.name == name)
            .values(value=SequenceCounterModel.value + 1)
            .returning(SequenceCounterModel.value)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()

    def insert(self, name: str, value: int):
        self.db.add(SequenceCounterModel(name=name, value=value))
        self.db.flush()

    def get(self, name: str) -> SequenceCounterModel | None:
        return self.db.get(SequenceCounterModel, name, populate_existing=True)

    def set_value(self, name: str, value: int):
        counter = self.get(name)
        if counter is None:
            self.insert(name, value)
        else:
            counter.value = value
            self.db.flush()

    def all_order_numbers(self) -> list[str]:
        return list(self.db.execute(select(OrderModel.order_number)).scalars())

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
