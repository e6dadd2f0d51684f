"""
Tests for the search, email and case study retrieval tools.

Covers:
  - normalize_search_response (every recognised shape, bad JSON, unknown shapes)
  - SerperClient / search_google (mocked httpx, missing key, HTTP errors)
  - GmailSender / send_mail (mocked Composio, rejected and failed sends)
  - CaseStudyRetriever / search_case_studies (mocked Cohere + MongoDB)
  - Tool registration

Run with:
    python -m pytest testing/test_tools.py -v
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from case_study_agent.config import Settings
from case_study_agent.exceptions import UpstreamServiceError
from case_study_agent.tools import get_all_tools
from case_study_agent.tools.case_study_rag import (
    CaseStudyRetriever,
    Passage,
    get_case_study_rag_tools,
    search_case_studies,
)
from case_study_agent.tools.email import GmailSender, get_email_tools, send_mail
from case_study_agent.tools.search import (
    SerperClient,
    get_search_tools,
    normalize_search_response,
    search_google,
)


# ============================================================================
# Helpers
# ============================================================================


def mock_httpx_client(response=None, error=None):
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    if error is not None:
        mock_client.post = AsyncMock(side_effect=error)
    else:
        mock_client.post = AsyncMock(return_value=response)
    return mock_client


def mock_serper_response(payload):
    response = MagicMock()
    response.status_code = 200
    response.raise_for_status = MagicMock()
    response.json.return_value = payload
    return response


def mock_mongo(docs):
    mongo = MagicMock()
    collection = mongo.__getitem__.return_value.__getitem__.return_value
    collection.aggregate.return_value = docs
    return mongo, collection


def mock_cohere(vector=None, rerank_results=None):
    co = MagicMock()
    co.embed.return_value.embeddings.float_ = [vector or [0.1, 0.2, 0.3]]
    co.rerank.return_value.results = [
        MagicMock(index=index, relevance_score=score)
        for index, score in (rerank_results or [])
    ]
    return co


def sample_docs(count):
    return [
        {
            "_id": f"doc-{i}",
            "score": 0.9 - i * 0.1,
            "metadata": {"text": f"Passage {i}", "source": "guide.pdf"},
        }
        for i in range(count)
    ]


# ============================================================================
# normalize_search_response
# ============================================================================


class TestNormalizeSearchResponse:
    def test_value_with_results_object(self):
        raw = {"value": '{"results":[{"title":"A"}]}'}
        assert normalize_search_response(raw) == [{"title": "A"}]

    def test_value_with_list(self):
        raw = {"value": json.dumps([{"title": "A"}, {"title": "B"}])}
        assert normalize_search_response(raw) == [{"title": "A"}, {"title": "B"}]

    def test_output_list_uses_first_entry(self):
        raw = {"output": [{"value": '{"results":[{"title":"A"}]}'}, {"value": "[]"}]}
        assert normalize_search_response(raw) == [{"title": "A"}]

    def test_output_object(self):
        raw = {"output": {"value": '{"results":[{"title":"A"}]}'}}
        assert normalize_search_response(raw) == [{"title": "A"}]

    def test_direct_results(self):
        raw = {"output": {"results": [{"title": "A"}]}}
        assert normalize_search_response(raw) == [{"title": "A"}]
        assert normalize_search_response({"results": [{"title": "B"}]}) == [
            {"title": "B"}
        ]

    def test_serper_organic(self):
        raw = {"searchParameters": {"q": "x"}, "organic": [{"title": "A", "link": "u"}]}
        assert normalize_search_response(raw) == [{"title": "A", "link": "u"}]

    def test_invalid_json_returns_empty(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert normalize_search_response({"value": "not json"}) == []
        assert "Failed to parse" in caplog.text

    def test_value_object_without_results(self):
        assert normalize_search_response({"value": '{"items": []}'}) == []

    def test_value_results_not_list(self):
        assert normalize_search_response({"value": '{"results": "nope"}'}) == []

    def test_value_takes_priority_over_results(self):
        raw = {"value": "[]", "results": [{"title": "ignored"}]}
        assert normalize_search_response(raw) == []

    def test_non_mapping_hits_dropped(self):
        assert normalize_search_response({"value": '["a", "b"]'}) == []
        assert normalize_search_response(
            {"value": json.dumps([{"title": "A"}, "stray", 3])}
        ) == [{"title": "A"}]
        assert normalize_search_response({"results": [None, {"title": "B"}]}) == [
            {"title": "B"}
        ]
        assert normalize_search_response({"organic": ["x", {"title": "C"}]}) == [
            {"title": "C"}
        ]

    @pytest.mark.parametrize(
        "raw",
        [None, "text", 42, [], {}, {"output": None}, {"output": []}, {"results": "x"}],
    )
    def test_unrecognised_shapes_return_empty(self, raw):
        assert normalize_search_response(raw) == []


# ============================================================================
# SerperClient / search_google
# ============================================================================


class TestSearchGoogle:
    @pytest.mark.asyncio
    async def test_missing_api_key_returns_empty(self):
        result = await search_google(SerperClient(api_key=""), "swot")
        assert result == {"results": []}

    @pytest.mark.asyncio
    async def test_missing_api_key_raises_in_client(self):
        with pytest.raises(UpstreamServiceError):
            await SerperClient(api_key=None).search("swot")

    @pytest.mark.asyncio
    async def test_search_success(self):
        payload = {
            "organic": [
                {"title": "SWOT", "link": "https://example.com", "snippet": "S"},
            ]
        }
        mock_client = mock_httpx_client(mock_serper_response(payload))

        with patch(
            "case_study_agent.tools.search.httpx.AsyncClient",
            return_value=mock_client,
        ):
            result = await search_google(SerperClient(api_key="key"), "swot", 3)

        assert result["results"] == payload["organic"]
        assert result["raw"] == payload
        _, kwargs = mock_client.post.call_args
        assert kwargs["headers"]["X-API-KEY"] == "key"
        assert kwargs["json"] == {"q": "swot", "num": 3}

    @pytest.mark.asyncio
    async def test_result_count_capped(self):
        mock_client = mock_httpx_client(mock_serper_response({"organic": []}))

        with patch(
            "case_study_agent.tools.search.httpx.AsyncClient",
            return_value=mock_client,
        ):
            await SerperClient(api_key="key").search("swot", num_results=50)

        _, kwargs = mock_client.post.call_args
        assert kwargs["json"]["num"] == 20

    @pytest.mark.asyncio
    async def test_result_count_at_least_one(self):
        mock_client = mock_httpx_client(mock_serper_response({"organic": []}))

        with patch(
            "case_study_agent.tools.search.httpx.AsyncClient",
            return_value=mock_client,
        ):
            await SerperClient(api_key="key").search("swot", num_results=-3)

        _, kwargs = mock_client.post.call_args
        assert kwargs["json"]["num"] == 1

    @pytest.mark.asyncio
    async def test_http_error_returns_empty(self):
        mock_client = mock_httpx_client(error=Exception("HTTP error"))

        with patch(
            "case_study_agent.tools.search.httpx.AsyncClient",
            return_value=mock_client,
        ):
            result = await search_google(SerperClient(api_key="key"), "swot")

        assert result == {"results": []}

    @pytest.mark.asyncio
    async def test_tool_invoke(self):
        payload = {"organic": [{"title": "A"}]}
        mock_client = mock_httpx_client(mock_serper_response(payload))
        tool = get_search_tools("key")[0]

        with patch(
            "case_study_agent.tools.search.httpx.AsyncClient",
            return_value=mock_client,
        ):
            result = await tool.ainvoke({"query": "porter five forces"})

        assert tool.name == "search_google"
        assert result["results"] == [{"title": "A"}]
        _, kwargs = mock_client.post.call_args
        assert kwargs["json"]["num"] == 5


# ============================================================================
# GmailSender / send_mail
# ============================================================================


class TestSendMail:
    @pytest.mark.asyncio
    async def test_success(self):
        client = MagicMock()
        client.tools.execute.return_value = {"successful": True, "data": {"id": "m1"}}
        sender = GmailSender(client=client, user_id="user-1")

        result = await send_mail(sender, "a@b.com", "Report", "Body")

        assert result == {"status": "Email sent successfully"}
        _, kwargs = client.tools.execute.call_args
        assert kwargs["slug"] == "GMAIL_SEND_EMAIL"
        assert kwargs["user_id"] == "user-1"
        assert kwargs["arguments"] == {
            "recipient_email": "a@b.com",
            "subject": "Report",
            "body": "Body",
        }

    @pytest.mark.asyncio
    async def test_rejected_by_provider(self):
        client = MagicMock()
        client.tools.execute.return_value = {
            "successful": False,
            "data": {},
            "error": "No connected account",
        }
        sender = GmailSender(client=client)

        result = await send_mail(sender, "a@b.com", "Report", "Body")

        assert result == {"status": "Failed to send email", "details": "No connected account"}

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        client = MagicMock()
        client.tools.execute.side_effect = RuntimeError("connection reset")
        sender = GmailSender(client=client)

        result = await send_mail(sender, "a@b.com", "Report", "Body")

        assert result["status"] == "Failed to send email"
        assert "connection reset" in result["details"]

    def test_client_created_lazily(self):
        with patch("case_study_agent.tools.email.Composio") as composio_cls:
            sender = GmailSender(api_key="ck")
            composio_cls.assert_not_called()
            assert sender.client is composio_cls.return_value
            assert sender.client is composio_cls.return_value
        composio_cls.assert_called_once_with(api_key="ck")

    @pytest.mark.asyncio
    async def test_tool_invoke(self):
        client = MagicMock()
        client.tools.execute.return_value = {"successful": True}
        tool = get_email_tools(client=client)[0]

        result = await tool.ainvoke(
            {"recipient": "a@b.com", "subject": "S", "body": "B"}
        )

        assert tool.name == "send_mail"
        assert result == {"status": "Email sent successfully"}


# ============================================================================
# CaseStudyRetriever / search_case_studies
# ============================================================================


class TestCaseStudyRetriever:
    def make_retriever(self, docs, rerank_results=None):
        mongo, collection = mock_mongo(docs)
        co = mock_cohere(rerank_results=rerank_results)
        retriever = CaseStudyRetriever(
            mongodb_uri="mongodb://localhost",
            database="cases",
            mongo_client=mongo,
            cohere_client=co,
        )
        return retriever, mongo, collection, co

    def test_close_releases_mongo_client(self):
        retriever, mongo, _, _ = self.make_retriever([])
        retriever.close()
        mongo.close.assert_called_once()
        retriever.close()
        mongo.close.assert_called_once()

    def test_close_without_connection(self):
        with patch("case_study_agent.tools.case_study_rag.MongoClient") as mongo_client:
            CaseStudyRetriever(mongodb_uri="mongodb://localhost", database="cases").close()
        mongo_client.assert_not_called()

    def test_vector_search_pipeline(self):
        retriever, mongo, collection, co = self.make_retriever(sample_docs(2))

        passages = retriever.vector_search([0.1, 0.2], limit=5)

        mongo.__getitem__.assert_called_once_with("cases")
        mongo.__getitem__.return_value.__getitem__.assert_called_once_with("caseStudyGuide")
        pipeline = collection.aggregate.call_args.args[0]
        stage = pipeline[0]["$vectorSearch"]
        assert stage["index"] == "caseStudyGuide_vector_index"
        assert stage["queryVector"] == [0.1, 0.2]
        assert stage["limit"] == 5
        assert passages[0] == Passage(
            id="doc-0",
            text="Passage 0",
            score=0.9,
            metadata={"text": "Passage 0", "source": "guide.pdf"},
        )

    def test_embed_uses_query_input_type(self):
        retriever, _, _, co = self.make_retriever([])
        assert retriever.embed("swot") == [0.1, 0.2, 0.3]
        _, kwargs = co.embed.call_args
        assert kwargs["texts"] == ["swot"]
        assert kwargs["model"] == "embed-v4.0"
        assert kwargs["input_type"] == "search_query"

    def test_rerank_keeps_top_three(self):
        retriever, _, _, co = self.make_retriever(
            sample_docs(5), rerank_results=[(3, 0.99), (0, 0.8), (4, 0.5)]
        )

        found = retriever.query("swot", limit=5)

        _, kwargs = co.rerank.call_args
        assert kwargs["top_n"] == 3
        assert kwargs["model"] == "rerank-v3.5"
        assert kwargs["documents"] == [f"Passage {i}" for i in range(5)]
        assert [p.id for p in found["passages"]] == ["doc-3", "doc-0", "doc-4"]
        assert [p.score for p in found["passages"]] == [0.99, 0.8, 0.5]
        assert found["total_found"] == 5

    def test_rerank_fewer_than_three(self):
        retriever, _, _, co = self.make_retriever(
            sample_docs(2), rerank_results=[(1, 0.7), (0, 0.6)]
        )

        found = retriever.query("swot")

        assert co.rerank.call_args.kwargs["top_n"] == 2
        assert len(found["passages"]) == 2

    def test_no_hits_skips_rerank(self):
        retriever, _, _, co = self.make_retriever([])
        assert retriever.query("swot") == {"passages": [], "total_found": 0}
        co.rerank.assert_not_called()

    def test_upstream_failure_wrapped(self):
        retriever, _, _, co = self.make_retriever(sample_docs(1))
        co.embed.side_effect = RuntimeError("cohere down")

        with pytest.raises(UpstreamServiceError, match="cohere down"):
            retriever.query("swot")

    @pytest.mark.asyncio
    async def test_search_case_studies_success(self):
        retriever, _, _, _ = self.make_retriever(
            sample_docs(4), rerank_results=[(2, 0.9), (1, 0.8), (0, 0.7)]
        )

        result = await search_case_studies(retriever, "What is SWOT?", limit=4)

        assert result["query"] == "What is SWOT?"
        assert result["total_found"] == 4
        assert [r["text"] for r in result["results"]] == [
            "Passage 2",
            "Passage 1",
            "Passage 0",
        ]

    @pytest.mark.asyncio
    async def test_search_case_studies_no_results(self):
        retriever, _, _, _ = self.make_retriever([])

        result = await search_case_studies(retriever, "What is SWOT?")

        assert result == {
            "results": [],
            "message": "No relevant documents found for the query.",
        }

    @pytest.mark.asyncio
    async def test_search_case_studies_failure(self):
        retriever, _, collection, _ = self.make_retriever([])
        collection.aggregate.side_effect = RuntimeError("index missing")

        result = await search_case_studies(retriever, "What is SWOT?")

        assert result["results"] == []
        assert "index missing" in result["error"]

    @pytest.mark.asyncio
    async def test_tool_invoke(self):
        retriever, _, _, _ = self.make_retriever([])
        tool = get_case_study_rag_tools(retriever)[0]

        result = await tool.ainvoke({"query": "SWOT"})

        assert tool.name == "case_study_rag"
        assert result["results"] == []


# ============================================================================
# Tool registration
# ============================================================================


class TestGetAllTools:
    def test_all_tools_registered(self, tmp_path):
        settings = Settings(
            mongodb_uri="mongodb://localhost",
            mongodb_database="cases",
            output_dir=tmp_path,
        )
        names = [t.name for t in get_all_tools(settings)]
        assert names == ["search_google", "send_mail", "create_pdf", "case_study_rag"]
