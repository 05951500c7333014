"""Data models for trace graphs."""

from dataclasses import dataclass, field
from typing import List, Union

from diffgraph.utils import fifth_power, fifth_root


@dataclass
class DiffNode:
    id: int
    label: str
    abserr: float
    relerr_raw: float
    addr: str = ""
    disas: str = ""
    func: str = ""
    src: str = ""
    incoming: List[int] = field(default_factory=list)
    outgoing: List[int] = field(default_factory=list)
    color: int = 0xFF
    relerr: float = field(init=False)

    def __post_init__(self) -> None:
        self.relerr = fifth_root(self.relerr_raw)

    @property
    def display_relerr(self) -> float:
        return fifth_power(self.relerr)


@dataclass
class Cluster:
    """Nodes sharing one originating function.

    ``relerr`` is a running average: every added node halves the distance
    between the current value and its own error, so later members weigh more
    than earlier ones.
    """

    name: str
    nodes: List[DiffNode]
    relerr: float
    color: int = 0x00

    @classmethod
    def from_node(cls, node: DiffNode) -> "Cluster":
        return cls(name=node.func, nodes=[node], relerr=node.relerr)

    def add(self, node: DiffNode) -> None:
        self.nodes.append(node)
        self.relerr = (self.relerr + node.relerr) / 2

    @property
    def display_relerr(self) -> float:
        return fifth_power(self.relerr)

    @property
    def node_ids(self) -> List[int]:
        return [node.id for node in self.nodes]


# Parse events, one per input line.


@dataclass(frozen=True)
class NodeMinimal:
    lineno: int
    id: int
    label: str
    abserr: float
    relerr: float

    def to_node(self) -> DiffNode:
        return DiffNode(self.id, self.label, self.abserr, self.relerr)


@dataclass(frozen=True)
class NodeFull:
    lineno: int
    id: int
    label: str
    abserr: float
    relerr: float
    addr: str
    disas: str
    func: str
    src: str

    def to_node(self) -> DiffNode:
        return DiffNode(
            self.id,
            self.label,
            self.abserr,
            self.relerr,
            addr=self.addr,
            disas=self.disas,
            func=self.func,
            src=self.src,
        )


@dataclass(frozen=True)
class EdgeRecord:
    lineno: int
    src: int
    dst: int


@dataclass(frozen=True)
class IgnoredLine:
    lineno: int


@dataclass(frozen=True)
class ParseFailure:
    lineno: int
    source: str
    field: str
    text: str

    def describe(self) -> str:
        return f"{self.source}:{self.lineno}: malformed {self.field} value {self.text!r}"


ParseEvent = Union[NodeFull, NodeMinimal, EdgeRecord, IgnoredLine, ParseFailure]
