"""
Grafana HTTP API Schemas

Pydantic models for the subset of the Grafana HTTP API used by the exporter:
- ``GET /api/datasources/name/{name}`` (data source lookup)
- ``POST /api/ds/query`` (data source query, data frame response)

Unknown response fields are ignored so that newer Grafana versions keep
validating.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_REF_ID = "A"


class DataSource(BaseModel):
    """Data source metadata returned by the lookup endpoint"""

    model_config = ConfigDict(extra="ignore")

    id: int
    uid: str = ""
    name: str = ""


# /api/ds/query request


class QueryTarget(BaseModel):
    """A single query against one data source"""

    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field(DEFAULT_REF_ID, alias="refId")
    expr: str = Field(..., description="PromQL expression")
    datasource_id: int = Field(..., alias="datasourceId")


class QueryRequest(BaseModel):
    """Request body for /api/ds/query"""

    model_config = ConfigDict(populate_by_name=True)

    queries: List[QueryTarget]
    from_time: str = Field(..., alias="from", description="Epoch millis")
    to_time: str = Field(..., alias="to", description="Epoch millis")


# /api/ds/query response


class FrameField(BaseModel):
    """Column description of a data frame"""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: str = ""
    labels: Optional[Dict[str, str]] = None


class FrameSchema(BaseModel):
    """Schema of a data frame (one field per column)"""

    model_config = ConfigDict(extra="ignore")

    fields: List[FrameField] = Field(default_factory=list)


class FrameData(BaseModel):
    """Column-major values of a data frame.

    ``values[0]`` holds timestamps, ``values[1]`` the sample values. Gaps are
    returned as ``null``.
    """

    model_config = ConfigDict(extra="ignore")

    values: List[List[Optional[float]]] = Field(default_factory=list)


class ResultFrame(BaseModel):
    """One labeled time series"""

    model_config = ConfigDict(extra="ignore")

    schema_: FrameSchema = Field(default_factory=FrameSchema, alias="schema")
    data: FrameData = Field(default_factory=FrameData)


class QueryResult(BaseModel):
    """Result of one query (one refId)"""

    model_config = ConfigDict(extra="ignore")

    frames: List[ResultFrame] = Field(default_factory=list)
    error: Optional[str] = None


class QueryResponse(BaseModel):
    """Response body of /api/ds/query, keyed by refId"""

    model_config = ConfigDict(extra="ignore")

    results: Dict[str, QueryResult] = Field(default_factory=dict)

    def frames(self, ref_id: str = DEFAULT_REF_ID) -> List[ResultFrame]:
        """Return the frames of ``ref_id``, or an empty list if absent."""
        result = self.results.get(ref_id)
        return result.frames if result is not None else []
