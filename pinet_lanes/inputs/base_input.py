import abc
from typing import Iterator, Tuple


class BaseInput(abc.ABC):
    @abc.abstractmethod
    def start(self) -> None:
        ...

    @abc.abstractmethod
    def stop(self) -> None:
        ...

    @abc.abstractmethod
    def frames(self) -> Iterator[Tuple[int, object]]:
        ...

    @abc.abstractmethod
    def __len__(self) -> int:
        ...
