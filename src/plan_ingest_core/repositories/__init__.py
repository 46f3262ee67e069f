from plan_ingest_core.repositories.creators import CREATOR_PROFILE_KEYS, load_creator
from plan_ingest_core.repositories.documents import DOCUMENTS_KEY, DocumentRepository
from plan_ingest_core.repositories.plans import TRAINING_PLANS_KEY, TrainingPlanRepository

__all__ = [
    "CREATOR_PROFILE_KEYS",
    "DOCUMENTS_KEY",
    "DocumentRepository",
    "TRAINING_PLANS_KEY",
    "TrainingPlanRepository",
    "load_creator",
]
