from .builder import ProposalBuilder
from .controller import ExecutionController, packed_signatures, signature_status
from .modes import PendingProposal, Proposal, ProposalState, SignatureStatus, proposal_state

__all__ = [
    "ExecutionController",
    "PendingProposal",
    "Proposal",
    "ProposalBuilder",
    "ProposalState",
    "SignatureStatus",
    "packed_signatures",
    "proposal_state",
    "signature_status",
]
