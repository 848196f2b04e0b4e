"""Pydantic schemas for dependency records and their API envelopes."""

import ipaddress

from pydantic import BaseModel, ConfigDict, Field, field_validator

from depgraph.models.node import OperatingSystem


def normalize_ip(value: str) -> str:
    """Canonical text form of an IPv4/IPv6 address, the form node ids take."""
    return str(ipaddress.ip_address(value.strip()))


class DependencyKey(BaseModel):
    """Fields that identify one connection between two hosts."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    local_ip: str = Field(..., alias="localIp")
    remote_ip: str = Field(..., alias="remoteIp")
    module: str = Field(..., min_length=1, max_length=50)
    local_port: int = Field(..., alias="localPort", ge=0, le=65535)
    remote_port: int = Field(..., alias="remotePort", ge=0, le=65535)

    @field_validator("local_ip", "remote_ip")
    @classmethod
    def validate_ip(cls, v: str) -> str:
        """Validate and normalize an IPv4/IPv6 address."""
        try:
            return normalize_ip(v)
        except ValueError as e:
            raise ValueError(f"Invalid IP address: {e}")


class DependencyRecord(DependencyKey):
    """One observed dependency as submitted by a collector."""

    local_os: OperatingSystem = Field(OperatingSystem.UNKNOWN, alias="localOS")
    description: str = Field("", max_length=4096)

    @field_validator("local_os", mode="before")
    @classmethod
    def parse_os(cls, v) -> OperatingSystem:
        """Map anything unrecognized to Unknown instead of failing."""
        return OperatingSystem.parse(v)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v) -> str:
        return "" if v is None else v

    def key(self) -> DependencyKey:
        return DependencyKey(
            local_ip=self.local_ip,
            remote_ip=self.remote_ip,
            module=self.module,
            local_port=self.local_port,
            remote_port=self.remote_port,
        )


class DependencyOut(BaseModel):
    """Flattened dependency rebuilt from the graph."""

    model_config = ConfigDict(populate_by_name=True)

    local_ip: str = Field(..., serialization_alias="localIp")
    local_os: str = Field(..., serialization_alias="localOS")
    remote_ip: str = Field(..., serialization_alias="remoteIp")
    module: str
    local_port: int = Field(..., serialization_alias="localPort")
    remote_port: int = Field(..., serialization_alias="remotePort")
    description: str


class IngestResponse(BaseModel):
    """Result of a batch ingest."""

    applied: int
    nodes_created: int = Field(..., serialization_alias="nodesCreated")
    nodes_updated: int = Field(..., serialization_alias="nodesUpdated")
    connections_upserted: int = Field(..., serialization_alias="connectionsUpserted")
    edges_created: int = Field(..., serialization_alias="edgesCreated")


class DeleteResponse(BaseModel):
    """Result of a batch delete."""

    deleted: int
    edges_removed: int = Field(..., serialization_alias="edgesRemoved")
