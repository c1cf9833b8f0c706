from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenAI-compatible chat + embeddings
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    chat_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    llm_timeout_seconds: float = 60.0

    # Brave search
    brave_api_key: str = ""
    brave_search_url: str = "https://api.search.brave.com/res/v1/web/search"
    search_result_count: int = 10
    search_max_results: int = 7

    # Fetching
    fetch_max_chars: int = 6000
    fetch_retry_times: int = 2
    http_timeout_seconds: float = 30.0

    # Research loop
    max_iterations: int = 3
    scrape_concurrency: int = 3
    similarity_threshold: float = 0.9
    next_query_fact_window: int = 15

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
