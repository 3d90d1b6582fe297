import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import declarative_base, sessionmaker

# .envファイルを読み込む
load_dotenv()

# 永続キャッシュ（SCAN_CACHE_BACKEND=db）の接続情報
DB_USER = os.getenv("DB_USER", "root")
DB_PASSWORD = os.getenv("DB_PASSWORD", "root")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_NAME = os.getenv("DB_NAME", "sugata_db")
DB_PORT = int(os.getenv("DB_PORT", "3306"))
# MySQL の wait_timeout より短くする
DB_POOL_RECYCLE_SEC = int(os.getenv("DB_POOL_RECYCLE_SEC", "3600"))

SQLALCHEMY_DATABASE_URL = URL.create(
    drivername="mysql+mysqlconnector",
    username=DB_USER,
    password=DB_PASSWORD,
    host=DB_HOST,
    port=DB_PORT,
    database=DB_NAME,
    query={"auth_plugin": "mysql_native_password", "charset": "utf8mb4"}
)

# 接続はキャッシュ操作の初回まで張られない
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=DB_POOL_RECYCLE_SEC,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """リクエスト単位のDBセッションを返す"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
