"""Library configuration."""
from pydantic import BaseModel, ConfigDict, Field


class CausalityConfig(BaseModel):
    """Settings shared by graph stores and causal queries."""

    model_config = ConfigDict(frozen=True)

    lamport_property: str = Field(
        default="lamportLogicalTime",
        min_length=1,
        description="Event property holding the persisted Lamport time",
    )
    vector_property: str = Field(
        default="vectorLogicalTime",
        min_length=1,
        description="Event property holding the persisted vector time (JSON)",
    )
    log_label: str = Field(
        default="LOG",
        min_length=1,
        description="Tag marking log-producing events for only-logs queries",
    )
    persist_subgraph_clocks: bool = Field(
        default=False,
        description=(
            "Write clocks computed by get_causal_graph back onto the stored "
            "events, replacing their whole-graph timestamps"
        ),
    )


DEFAULT_CONFIG = CausalityConfig()
