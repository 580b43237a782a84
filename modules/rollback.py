"""Manual rollback guidance after a failed cutover."""

from typing import List, Optional, Sequence

from lib.context import RunContext
from lib.models import CutoverPlan


class RollbackGuide:
    """
    Builds and logs the steps needed to put the source back in service.

    Nothing here mutates either cluster; replication cannot be re-established
    safely without an operator deciding which side holds the good data.
    """

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.logger = ctx.logger

    def steps(self, plan: Optional[CutoverPlan], created_shares: Sequence[str] = ()) -> List[str]:
        src, tgt = self.ctx.source_svm, self.ctx.target_svm
        steps: List[str] = []

        relationships = plan.relationships if plan else ()
        if relationships:
            for relationship in relationships:
                steps.append(
                    f"Resync replication {relationship.source_location} -> {relationship.destination_location} "
                    "(snapmirror resync on the target cluster)"
                )
        else:
            steps.append(f"Re-establish replication from {src} to {tgt} for every broken relationship")

        if plan and plan.interface_pairs:
            for pair in plan.interface_pairs:
                steps.append(
                    f"Bring {tgt}:{pair.target_interface} down if it holds {pair.source_address}, "
                    f"then bring {src}:{pair.source_interface} up on {pair.source_address}/{pair.source_netmask}"
                )
        else:
            steps.append(f"Bring the source interfaces on {src} back up")

        steps.append(f"Re-enable the CIFS service on {src}")

        if created_shares:
            steps.append(f"Remove partially created shares on {tgt}: {', '.join(created_shares)}")
        else:
            steps.append(f"Remove any partially created shares on {tgt}")

        return steps

    def log_steps(self, plan: Optional[CutoverPlan], created_shares: Sequence[str] = ()) -> List[str]:
        steps = self.steps(plan, created_shares)
        self.logger.error("=" * 60)
        self.logger.error("MANUAL ROLLBACK REQUIRED")
        self.logger.error("The source CIFS service on %s is disabled and the cutover did not complete.", self.ctx.source_svm)
        self.logger.error("=" * 60)
        for number, step in enumerate(steps, 1):
            self.logger.error("  %s. %s", number, step)
        return steps
