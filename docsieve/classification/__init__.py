from docsieve.classification.classifier import DocumentClassifier, recommend_entry_stage
from docsieve.classification.models import DocumentPreview

__all__ = ["DocumentClassifier", "DocumentPreview", "recommend_entry_stage"]
