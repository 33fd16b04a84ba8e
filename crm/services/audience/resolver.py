"""
Audience resolver.

Turns a rule set into a customer count (preview) or the matched
customers themselves (dispatch). Read only.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from crm.repositories.customer import Customer, CustomerStore
from crm.services.audience.compiler import QueryCompiler, is_match_all
from crm.services.audience.rules import RuleGroup

logger = logging.getLogger(__name__)

TARGETS_EVERYONE_NOTE = (
    "No rules defined: the audience is every customer in the store."
)


@dataclass
class AudienceResolution:
    """Result of resolving a rule set."""

    count: int
    customers: List[Customer] = field(default_factory=list)
    targets_everyone: bool = False

    @property
    def note(self) -> Optional[str]:
        return TARGETS_EVERYONE_NOTE if self.targets_everyone else None


class AudienceResolver:
    """
    Executes compiled rule sets against the customer store.

    Errors from the compiler (RuleError subclasses) and from the store
    propagate to the caller.
    """

    def __init__(self, customers: CustomerStore, compiler: Optional[QueryCompiler] = None):
        self.customers = customers
        self.compiler = compiler or QueryCompiler()

    async def resolve(self, rules: RuleGroup, materialize: bool = True) -> AudienceResolution:
        """
        Resolves a rule set.

        Args:
            rules: rule tree to evaluate
            materialize: False for count-only (preview) mode

        Returns:
            AudienceResolution with the count and, when materialized,
            the matched customers
        """
        predicate = self.compiler.compile(rules)
        targets_everyone = is_match_all(predicate) and rules.is_empty

        if not materialize:
            count = await self.customers.count(predicate)
            logger.debug(f"[Resolver] Preview count={count} everyone={targets_everyone}")
            return AudienceResolution(count=count, targets_everyone=targets_everyone)

        customers = await self.customers.find(predicate)
        logger.info(
            f"[Resolver] Resolved {len(customers)} customers"
            f"{' (targets everyone)' if targets_everyone else ''}"
        )
        return AudienceResolution(
            count=len(customers),
            customers=customers,
            targets_everyone=targets_everyone,
        )

    async def count(self, rules: RuleGroup) -> AudienceResolution:
        """Count-only resolution."""
        return await self.resolve(rules, materialize=False)
