"""request-hydrator - demo Robyn server with hydrated requests."""

from robyn import Robyn

from hydrator.core.hydrate import HydratedRequest
from hydrator.core.logger import logger
from hydrator.core.router import Router
from hydrator.core.settings import settings as st
from hydrator.models.core import UploadFile

app = Robyn(__file__)

echo_router = Router(__file__, prefix="/echo")


def describe_body(request: HydratedRequest) -> dict:
    data = request.parsed_body.data or {}
    return {
        name: {"filename": value.filename, "size": value.size} if isinstance(value, UploadFile) else value
        for name, value in data.items()
    }


@echo_router.get("/:name")
async def echo_get(hydrated: HydratedRequest) -> dict:
    """Echo path, query and negotiated content type."""
    return {
        "name": hydrated.get_path_param("name"),
        "path": hydrated.url_path,
        "query": hydrated.url_query_params,
        "response_content_type": hydrated.response_content_type,
    }


@echo_router.post("/:name")
async def echo_post(hydrated: HydratedRequest) -> dict:
    """Echo the decoded body alongside the request parts."""
    return {
        "name": hydrated.get_path_param("name"),
        "path": hydrated.url_path,
        "query": hydrated.url_query_params,
        "content_type": hydrated.parsed_body.content_type,
        "body": describe_body(hydrated),
        "response_content_type": hydrated.response_content_type,
    }


app.include_router(echo_router)


def main() -> None:
    logger.info("🚀 STARTING %s | HOST=%s | PORT=%s", st.API_NAME, st.API_HOST, st.API_PORT)
    app.start(host=st.API_HOST, port=st.API_PORT)


if __name__ == "__main__":
    main()
