"""Per-chain custody and adjudicator deployments."""

from dataclasses import dataclass

from config.settings import settings

SEPOLIA_CHAIN_ID = 11155111
BASE_CHAIN_ID = 8453


@dataclass(frozen=True)
class ContractAddresses:
    custody: str
    adjudicator: str


_SEPOLIA = ContractAddresses(
    custody="0x490fb189DdE3a01B00be9BA5F41e3447FbC838b6",
    adjudicator="0x7de4A0736Cf5740fD3Ca2F2e9cc85c9AC223eF0C",
)

CONTRACT_ADDRESSES: dict[int, ContractAddresses] = {
    SEPOLIA_CHAIN_ID: _SEPOLIA,
    BASE_CHAIN_ID: ContractAddresses(
        custody="0x490fb189DdE3a01B00be9BA5F41e3447FbC838b6",
        adjudicator="0x7de4A0736Cf5740fD3Ca2F2e9cc85c9AC223eF0C",
    ),
}


def get_contract_addresses(chain_id: int) -> ContractAddresses:
    """Addresses for ``chain_id``; unknown chains fall back to Sepolia.

    CUSTODY_ADDRESS / ADJUDICATOR_ADDRESS in the environment win over the table.
    """
    known = CONTRACT_ADDRESSES.get(chain_id, _SEPOLIA)
    return ContractAddresses(
        custody=settings.CUSTODY_ADDRESS or known.custody,
        adjudicator=settings.ADJUDICATOR_ADDRESS or known.adjudicator,
    )
