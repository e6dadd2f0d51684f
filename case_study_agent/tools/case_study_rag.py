"""
Case study retrieval over the MongoDB Atlas vector index.

Flow: embed the query with Cohere, run ``$vectorSearch`` against the
``caseStudyGuide`` collection, then rerank the hits with Cohere and keep the
best three. Passage text is stored under ``metadata.text`` by the ingestion
side.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import cohere
from langchain_core.tools import tool
from pymongo import MongoClient

from ..exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

INDEX_NAME = "caseStudyGuide"
EMBED_MODEL = "embed-v4.0"
RERANK_MODEL = "rerank-v3.5"
RERANK_TOP_K = 3


@dataclass
class Passage:
    """A single passage returned by the vector store."""

    id: str
    text: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "score": self.score,
            "metadata": self.metadata,
        }


class CaseStudyRetriever:
    """Embeds, searches and reranks against the case study guide."""

    def __init__(
        self,
        mongodb_uri: str,
        database: str,
        cohere_api_key: Optional[str] = None,
        index_name: str = INDEX_NAME,
        mongo_client: Optional[MongoClient] = None,
        cohere_client: Optional[cohere.ClientV2] = None,
    ):
        self.mongodb_uri = mongodb_uri
        self.database = database
        self.cohere_api_key = cohere_api_key
        self.index_name = index_name
        self._mongo = mongo_client
        self._cohere = cohere_client

    @property
    def mongo(self) -> MongoClient:
        if self._mongo is None:
            self._mongo = MongoClient(self.mongodb_uri)
        return self._mongo

    @property
    def co(self) -> cohere.ClientV2:
        if self._cohere is None:
            self._cohere = cohere.ClientV2(api_key=self.cohere_api_key)
        return self._cohere

    def close(self):
        """Close the MongoDB client if one was opened."""
        if self._mongo is not None:
            self._mongo.close()
            self._mongo = None

    def embed(self, query: str) -> List[float]:
        response = self.co.embed(
            texts=[query],
            model=EMBED_MODEL,
            input_type="search_query",
            embedding_types=["float"],
        )
        return list(response.embeddings.float_[0])

    def vector_search(self, vector: List[float], limit: int) -> List[Passage]:
        collection = self.mongo[self.database][self.index_name]
        pipeline = [
            {
                "$vectorSearch": {
                    "index": f"{self.index_name}_vector_index",
                    "path": "embedding",
                    "queryVector": vector,
                    "numCandidates": max(limit * 10, 100),
                    "limit": limit,
                }
            },
            {"$addFields": {"score": {"$meta": "vectorSearchScore"}}},
            {"$project": {"embedding": 0}},
        ]
        passages = []
        for doc in collection.aggregate(pipeline):
            metadata = doc.get("metadata") or {}
            passages.append(
                Passage(
                    id=str(doc.get("_id", "")),
                    text=metadata.get("text", ""),
                    score=float(doc.get("score", 0.0)),
                    metadata=metadata,
                )
            )
        return passages

    def rerank(self, query: str, passages: List[Passage]) -> List[Passage]:
        top_n = min(RERANK_TOP_K, len(passages))
        response = self.co.rerank(
            model=RERANK_MODEL,
            query=query,
            documents=[p.text for p in passages],
            top_n=top_n,
        )
        reranked = []
        for item in response.results:
            passage = passages[item.index]
            reranked.append(
                Passage(
                    id=passage.id,
                    text=passage.text,
                    score=item.relevance_score,
                    metadata=passage.metadata,
                )
            )
        return reranked

    def query(self, query: str, limit: int = 5) -> Dict[str, Any]:
        """Search then rerank. Raises UpstreamServiceError on any failure."""
        try:
            passages = self.vector_search(self.embed(query), limit)
            if not passages:
                return {"passages": [], "total_found": 0}
            return {
                "passages": self.rerank(query, passages),
                "total_found": len(passages),
            }
        except Exception as e:
            raise UpstreamServiceError(
                f"Failed to perform case study RAG search: {e}", service="rag"
            ) from e


async def search_case_studies(
    retriever: CaseStudyRetriever, query: str, limit: int = 5
) -> Dict[str, Any]:
    """Core logic for the RAG tool; failures come back as a status."""
    try:
        found = await asyncio.to_thread(retriever.query, query, limit)
    except UpstreamServiceError as e:
        logger.error(f"Error in case study RAG search: {e}")
        return {"results": [], "error": str(e)}

    if not found["passages"]:
        return {"results": [], "message": "No relevant documents found for the query."}
    return {
        "results": [p.to_dict() for p in found["passages"]],
        "total_found": found["total_found"],
        "query": query,
    }


def get_case_study_rag_tools(retriever: CaseStudyRetriever) -> list:
    """Generate the retrieval tool bound to a retriever."""

    @tool("case_study_rag")
    async def case_study_rag_tool(query: str, limit: int = 5) -> dict:
        """
        Retrieve relevant material from the embedded business case study guide.

        Use for academic definitions and frameworks, e.g. "What is the
        importance of SWOT in case analysis?" or "List the limitations of the
        case study method in business strategy."

        Args:
            query: A natural language question about case study analysis.
            limit: Maximum number of passages to pull before reranking.
        """
        return await search_case_studies(retriever, query, limit)

    return [case_study_rag_tool]
