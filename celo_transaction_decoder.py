#!/usr/bin/env python3
"""
Celo Proposal Transaction Decoder

Decodes the encoded calls stored in a governance proposal into
`Contract.function(param=value)` form using web3.py contract ABIs, then
annotates address parameters with contract/account names.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from eth_abi.exceptions import DecodingError
from web3 import Web3
from web3.exceptions import Web3Exception

from celo_utils import DecodeError, ValidationError, MAX_CONCURRENT_LOOKUPS, logger
from celo_contracts import get_contract_abi, load_abis
from celo_governance_client import ContractDetails, RawTransaction
from celo_address_annotator import AddressAnnotator


@dataclass
class Param:
    """One decoded call argument, in ABI declaration order"""
    name: str
    value: Any
    abi_type: str


@dataclass
class DecodedTransaction:
    contract: str
    function: str
    params: List[Param]
    value: int


def function_selector(data: bytes) -> bytes:
    """First four bytes of the calldata, zero padded for plain transfers"""
    return bytes(data[:4]).ljust(4, b'\x00')


class TransactionDecoder:
    """
    Decodes raw proposal transactions against the ABIs of the registered
    core contracts.

    Decoding runs with bounded parallelism since every address parameter may
    need an account lookup on the node.
    """

    def __init__(self, contracts: Iterable[ContractDetails], annotator: AddressAnnotator,
                 abis: Optional[Dict[str, List[Dict]]] = None,
                 max_workers: int = MAX_CONCURRENT_LOOKUPS) -> None:
        self.annotator = annotator
        self.max_workers = max(1, int(max_workers))
        if abis is None:
            abis = load_abis()

        # ABI decoding is local, no provider needed
        w3 = Web3()
        self._contracts: Dict[str, Tuple[str, Any]] = {}
        for cd in contracts:
            self._contracts[cd.address.lower()] = (
                cd.name,
                w3.eth.contract(
                    address=Web3.to_checksum_address(cd.address),
                    abi=get_contract_abi(cd.name, abis)
                )
            )

    def try_parse(self, tx: RawTransaction) -> Optional[Tuple[str, Any, Dict[str, Any]]]:
        """Return (contract name, function, named args) or None if nothing matches"""
        entry = self._contracts.get(tx.destination.lower())
        if entry is None or len(tx.data) < 4:
            return None

        name, contract = entry
        try:
            fn, args = contract.decode_function_input(tx.data)
        except (ValueError, DecodingError, Web3Exception) as e:
            logger.debug(f"{name} could not decode 0x{function_selector(tx.data).hex()}: {e}")
            return None
        return name, fn, args

    def _annotate(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.annotator.annotate(value)
        if isinstance(value, (list, tuple)):
            return type(value)(self._annotate(v) for v in value)
        return value

    def decode(self, tx: RawTransaction, index: int = 0) -> DecodedTransaction:
        """
        Decode a single proposal transaction.

        Raises:
            DecodeError: If no known contract/function matches the transaction
            ValidationError: If the named parameters do not cover every ABI argument
        """
        parsed = self.try_parse(tx)
        if parsed is None:
            raise DecodeError(
                f"Unable to decode transaction {index} to {tx.destination} "
                f"(selector 0x{function_selector(tx.data).hex()})",
                index=index,
                destination=tx.destination
            )

        contract_name, fn, args = parsed
        inputs = fn.abi.get('inputs', [])
        if len(args) != len(inputs):
            raise ValidationError(
                f"Length of parameters {len(args)} doesn't match length of arguments "
                f"{len(inputs)} for {contract_name}.{fn.fn_name} (transaction {index})"
            )

        params = []
        for position, abi_input in enumerate(inputs):
            name = abi_input.get('name', '')
            params.append(Param(
                name=name or str(position),
                value=self._annotate(args[name]),
                abi_type=abi_input.get('type', '')
            ))

        return DecodedTransaction(
            contract=contract_name,
            function=fn.fn_name,
            params=params,
            value=tx.value
        )

    def decode_all(self, transactions: List[RawTransaction]) -> List[DecodedTransaction]:
        """
        Decode every transaction of a proposal, preserving on-chain order.

        The first failure is raised to the caller; no partial list is returned.
        """
        if not transactions:
            return []

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            return list(executor.map(self.decode, transactions, range(len(transactions))))
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
