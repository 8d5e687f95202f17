"""Tests for DocumentReconciler."""

from chaindocs_core.discovery import DocumentReconciler, StrategyResult, merge_documents


def _result(name, *docs):
    result = StrategyResult(name)
    for doc in docs:
        result.add(doc)
    return result


class TestMergeDocuments:
    def test_non_empty_candidate_fields_win(self, make_document):
        existing = make_document("d1", title="Old", credential_hash="h", transaction_signature="s1")
        candidate = make_document("d1", title="New", credential_hash="", transaction_signature=None)

        merged = merge_documents(existing, candidate)

        assert merged.title == "New"
        assert merged.credential_hash == "h"
        assert merged.transaction_signature == "s1"

    def test_metadata_merged_candidate_wins(self, make_document):
        existing = make_document("d1", metadata={"a": 1, "b": 1})
        candidate = make_document("d1", metadata={"b": 2, "c": 3})

        assert merge_documents(existing, candidate).metadata == {"a": 1, "b": 2, "c": 3}

    def test_claim_state_never_taken_from_candidate(self, make_document):
        existing = make_document("d1")
        candidate = make_document("d1", claimed=True, nft_mint="fake")

        merged = merge_documents(existing, candidate)

        assert merged.claimed is False
        assert merged.nft_mint is None


class TestReconcile:
    def test_dedup_across_strategies(self, cache, make_document, holder):
        reconciler = DocumentReconciler(cache)
        results = [
            _result("cache_verification", make_document("d1")),
            _result("issuer_scan", make_document("d1"), make_document("d2")),
            _result("channel_scan", make_document("d2"), make_document("d3")),
        ]

        docs = reconciler.reconcile(holder, [], results)

        ids = [doc.document_id for doc in docs]
        assert sorted(ids) == ["d1", "d2", "d3"]
        assert len(ids) == len(set(ids))

    def test_later_strategy_extends_earlier(self, cache, make_document, holder):
        reconciler = DocumentReconciler(cache)
        local = [make_document("abc", title="cached title")]
        results = [_result("issuer_scan", make_document("abc", title="ledger title"))]

        docs = reconciler.reconcile(holder, local, results)

        assert [(doc.document_id, doc.title) for doc in docs] == [("abc", "ledger title")]
        assert cache.find_document("abc").title == "ledger title"

    def test_other_holders_dropped(self, cache, make_document, holder, other_holder):
        reconciler = DocumentReconciler(cache)
        local = [make_document("mine"), make_document("theirs-local", holder=other_holder)]
        results = [[make_document("theirs-scan", holder=other_holder)]]

        docs = reconciler.reconcile(holder, local, results)

        assert [doc.document_id for doc in docs] == ["mine"]
        assert cache.find_document("theirs-scan") is None

    def test_write_back_keeps_other_holders_records(self, cache, make_document, holder, other_holder):
        cache.upsert_documents([make_document("theirs", holder=other_holder)])
        DocumentReconciler(cache).reconcile(holder, [], [[make_document("mine")]])

        assert {doc.document_id for doc in cache.load_documents()} == {"theirs", "mine"}

    def test_registers_issuers_of_new_documents(self, cache, make_document, holder):
        DocumentReconciler(cache).reconcile(holder, [], [[make_document("d1", issuer="NewIssuer")]])

        assert "NewIssuer" in cache.issuers()

    def test_claim_state_from_claim_table(self, cache, make_document, holder):
        cache.mark_claimed("d1", nft_mint="mint-1")
        results = [[make_document("d1", claimed=False), make_document("d2", claimed=True, nft_mint="bogus")]]

        docs = {doc.document_id: doc for doc in DocumentReconciler(cache).reconcile(holder, [], results)}

        assert (docs["d1"].claimed, docs["d1"].nft_mint) == (True, "mint-1")
        assert (docs["d2"].claimed, docs["d2"].nft_mint) == (False, None)

    def test_sorted_newest_first(self, cache, make_document, holder):
        results = [
            [
                make_document("old", issue_date="2023-01-01T00:00:00.000Z"),
                make_document("new", issue_date="2025-01-01T00:00:00.000Z"),
                make_document("mid", issue_date="2024-01-01T00:00:00.000Z"),
            ]
        ]

        docs = DocumentReconciler(cache).reconcile(holder, [], results)

        assert [doc.document_id for doc in docs] == ["new", "mid", "old"]

    def test_idempotent(self, cache, make_document, holder):
        reconciler = DocumentReconciler(cache)
        results = [[make_document("d1"), make_document("d2", issue_date="2024-06-01T00:00:00.000Z")]]

        first = reconciler.reconcile(holder, cache.documents_for_holder(holder), results)
        second = reconciler.reconcile(holder, cache.documents_for_holder(holder), results)

        assert first == second
        assert len(cache.load_documents()) == 2
