"""
Compile endpoint models.

A failed compilation is not represented here: it is raised as CompileFailed
and rendered as problem+json (422) with the interpreted message.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from studio_compiler.services.compile import CompileOutcome

from .engine import UnitRequest, UnitResponse
from .common import ApiModel


class CompileRequest(UnitRequest):
    pass


class CompileResponse(ApiModel):
    mode: str
    abi: List[Any]
    bytecode: str
    contract_name: str
    compiler_version: Optional[str] = None
    warnings: List[str]
    gas_estimates: Optional[Dict[str, Any]] = None
    deployed_bytecode_size: Optional[int] = None
    contracts: Dict[str, Any]
    unit: UnitResponse

    @classmethod
    def from_outcome(cls, outcome: CompileOutcome) -> "CompileResponse":
        r = outcome.result
        return cls(
            mode=outcome.mode,
            abi=r.abi,
            bytecode=r.bytecode,
            contract_name=r.contract_name,
            compiler_version=r.compiler_version,
            warnings=r.warnings,
            gas_estimates=r.gas_estimates,
            deployed_bytecode_size=r.deployed_bytecode_size,
            contracts=r.contracts,
            unit=UnitResponse.from_unit(outcome.unit),
        )


__all__ = ["CompileRequest", "CompileResponse"]
