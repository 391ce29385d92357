from langchain_core.embeddings import DeterministicFakeEmbedding

from outlet_assistant.services.vector_store import VectorStoreService


def make_service(tmp_path):
    knowledge = tmp_path / "knowledge"
    knowledge.mkdir()
    return VectorStoreService(
        knowledge_dir=knowledge,
        store_dir=tmp_path / "store",
        embeddings=DeterministicFakeEmbedding(size=32),
    )


def test_empty_knowledge_folder_has_no_index(tmp_path):
    service = make_service(tmp_path)
    assert service.create_vector_store() is None
    assert not service.has_knowledge
    assert service.search_context("ice cream flavours") == ""


def test_load_knowledge_data_reads_txt_files_only(tmp_path):
    service = make_service(tmp_path)
    (service.knowledge_dir / "b_products.txt").write_text("Mango Delight is our best seller.", encoding="utf-8")
    (service.knowledge_dir / "a_brand.txt").write_text("Ideal Ice Creams is based in Mangalore.", encoding="utf-8")
    (service.knowledge_dir / "empty.txt").write_text("   ", encoding="utf-8")
    (service.knowledge_dir / "notes.md").write_text("ignored", encoding="utf-8")

    documents = service.load_knowledge_data()

    assert [doc.metadata["source"] for doc in documents] == ["a_brand.txt", "b_products.txt"]
    assert documents[0].page_content == "Ideal Ice Creams is based in Mangalore."


def test_index_is_built_saved_and_searchable(tmp_path):
    service = make_service(tmp_path)
    (service.knowledge_dir / "brand.txt").write_text("Ideal Ice Creams is based in Mangalore.", encoding="utf-8")

    assert service.create_vector_store() is not None
    assert service.has_knowledge
    assert (service.store_dir / "index.faiss").exists()
    assert service.search_context("Where is the brand from?") == "Ideal Ice Creams is based in Mangalore."


def test_search_context_joins_chunks_and_ignores_blank_queries(tmp_path):
    service = make_service(tmp_path)
    (service.knowledge_dir / "one.txt").write_text("Cone offers run every weekend.", encoding="utf-8")
    (service.knowledge_dir / "two.txt").write_text("Family packs come in 1 litre tubs.", encoding="utf-8")
    service.create_vector_store()

    context = service.search_context("offers", k=2)
    assert set(context.split("\n\n")) == {"Cone offers run every weekend.", "Family packs come in 1 litre tubs."}
    assert service.search_context("   ") == ""
