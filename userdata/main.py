import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from userdata.core import config
from userdata.database import Database
from userdata.routes import user_routes

logger = logging.getLogger(__name__)


def create_app(database: Database | None = None) -> FastAPI:
    app = FastAPI()
    app.state.database = database or Database()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.on_event('startup')
    def initialize_database() -> None:
        config.validate_runtime_config()
        try:
            app.state.database.open()
            app.state.database.create_schema()
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    @app.on_event('shutdown')
    def close_database() -> None:
        app.state.database.close()

    @app.get('/')
    def root():
        return {'status': 'User Data API Running'}

    app.include_router(user_routes.router, prefix='/users')
    return app


app = create_app()


def run() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)


if __name__ == '__main__':
    run()
