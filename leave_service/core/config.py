from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # MongoDB 접속 정보
    MONGODB_URI: str = "mongodb://mongodb:27017"
    MONGODB_DB_NAME: str = "military"

    # 휴가 데이터가 나뉘어 저장된 컬렉션들
    LEAVES_COLLECTION: str = "leaves"
    SCHEDULES_COLLECTION: str = "schedules"
    BALANCES_COLLECTION: str = "userLeaves"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"  # .env 파일을 통해 환경 변수 관리


settings = Settings()
