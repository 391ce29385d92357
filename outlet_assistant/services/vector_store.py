"""
VECTOR STORE SERVICE MODULE
===========================

Builds and queries the FAISS index that gives the Kannada tutor its brand and
outlet knowledge. Knowledge files (database/knowledge_data/*.txt) are loaded at
startup, split into chunks, embedded with HuggingFace, and stored in FAISS.
For each tutor message we embed the question and retrieve the k most similar
chunks; only those are added to the prompt.

LIFECYCLE:
  - create_vector_store(): Load all .txt files, chunk, embed, build FAISS, save to disk.
    Called once at startup. Restart the server after adding knowledge files.
  - search_context(query, k): Return the k best chunks joined by blank lines ("" with no knowledge).
  - save_vector_store(): Write the current FAISS index to database/vector_store/.
"""

import logging
from pathlib import Path
from typing import List, Optional

from langchain_community.vectorstores import FAISS
from langchain_core.documents import Document
from langchain_huggingface import HuggingFaceEmbeddings
from langchain_text_splitters import RecursiveCharacterTextSplitter

from config import (
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    EMBEDDING_MODEL,
    KNOWLEDGE_DATA_DIR,
    RETRIEVAL_TOP_K,
    VECTOR_STORE_DIR,
)


logger = logging.getLogger("outlet_assistant")


# ==============================================================================
# VECTOR STORE SERVICE CLASS
# ==============================================================================

class VectorStoreService:
    """
    Builds a FAISS index from knowledge_data .txt files and returns the most
    relevant chunks for a learner's message.
    """

    def __init__(
        self,
        knowledge_dir: Path = KNOWLEDGE_DATA_DIR,
        store_dir: Path = VECTOR_STORE_DIR,
        embeddings=None,
    ):
        """Create the embedding model (local, no API key) and text splitter; the index is built in create_vector_store()."""
        self.knowledge_dir = Path(knowledge_dir)
        self.store_dir = Path(store_dir)
        self.embeddings = embeddings or HuggingFaceEmbeddings(
            model_name=EMBEDDING_MODEL,
            model_kwargs={"device": "cpu"},
        )
        self.text_splitter = RecursiveCharacterTextSplitter(
            chunk_size=CHUNK_SIZE,
            chunk_overlap=CHUNK_OVERLAP,
        )
        self.vector_store: Optional[FAISS] = None

    # ------------------------------------------------------------------------------
    # LOAD DOCUMENTS FROM DISK
    # ------------------------------------------------------------------------------

    def load_knowledge_data(self) -> List[Document]:
        """Read every .txt file in the knowledge folder; one Document per non-empty file."""
        documents = []
        for file_path in sorted(self.knowledge_dir.glob("*.txt")):
            try:
                content = file_path.read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not load knowledge file %s: %s", file_path, e)
                continue
            if content:
                documents.append(Document(page_content=content, metadata={"source": file_path.name}))
        return documents

    # ------------------------------------------------------------------------------
    # BUILD AND SAVE FAISS INDEX
    # ------------------------------------------------------------------------------

    def create_vector_store(self) -> Optional[FAISS]:
        """
        Load knowledge files, chunk, embed, build the FAISS index and save it.
        With no knowledge files there is no index and search_context() returns "".
        """
        documents = self.load_knowledge_data()
        if not documents:
            logger.warning("No knowledge files in %s; tutor replies will use general knowledge only.", self.knowledge_dir)
            self.vector_store = None
            return None

        chunks = self.text_splitter.split_documents(documents)
        self.vector_store = FAISS.from_documents(chunks, self.embeddings)
        logger.info("Indexed %s knowledge file(s) as %s chunk(s)", len(documents), len(chunks))
        self.save_vector_store()
        return self.vector_store

    def save_vector_store(self):
        """Write the current FAISS index to disk. On error we only log."""
        if self.vector_store:
            try:
                self.vector_store.save_local(str(self.store_dir))
            except Exception as e:
                logger.error("Failed to save vector store to disk: %s", e)

    # ------------------------------------------------------------------------------
    # CONTEXT RETRIEVAL
    # ------------------------------------------------------------------------------

    @property
    def has_knowledge(self) -> bool:
        return self.vector_store is not None

    def search_context(self, query: str, k: int = RETRIEVAL_TOP_K) -> str:
        """Return the text of the k most similar chunks joined by blank lines; "" without an index."""
        if not self.vector_store or not query.strip():
            return ""
        docs = self.vector_store.similarity_search(query, k=k)
        chunks = [doc.page_content for doc in docs if doc.page_content]
        return "\n\n".join(chunks)
