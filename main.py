from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import uvicorn
import os
from dotenv import load_dotenv
from src.presentation.api.analytics.config import Settings
from src.presentation.api.analytics_endpoints import router as analytics_router

# 環境変数をロード
load_dotenv()

logging.basicConfig(
    level=Settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """アプリケーションファクトリー"""
    settings = Settings()
    env = settings.env
    app_suffix = settings.app_name_suffix

    app = FastAPI(
        title=f"GamePlan Analytics{app_suffix}",
        description="GamePlanのタスク・コメント・アクティビティから従業員の状況を集計するAPI",
        version="1.0.0",
    )

    # CORS設定
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ルーターの登録
    app.include_router(analytics_router)

    @app.get("/")
    async def root():
        return {
            "message": f"GamePlan Analytics{app_suffix} is running",
            "environment": env,
            "version": "1.0.0"
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app

app = create_app()

if __name__ == "__main__":
    env = os.getenv("ENV", "local")
    is_prod = env == "production"

    # 本番は reload=False、開発は True
    reload_flag = not is_prod

    # キャッシュはプロセス内なのでワーカーは既定で1
    workers = int(os.getenv("UVICORN_WORKERS", "1"))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=reload_flag,
        workers=workers,
    )
