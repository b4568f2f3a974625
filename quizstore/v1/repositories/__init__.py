from quizstore.v1.repositories.base import Repository, Found, NOT_FOUND, TransactionHandle
from quizstore.v1.repositories.client import Client, EmailHistoryRepository
