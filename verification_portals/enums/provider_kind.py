"""Provider kind enum."""

from enum import StrEnum


class ProviderKind(StrEnum):
    """External service a credential is verified against."""

    DBS = "dbs"
    RTW = "rtw"
    ECS = "ecs"
    GMC = "gmc"
    NMC = "nmc"
    GDC = "gdc"
    HCPC = "hcpc"
