import uvicorn
from tracking.core.config import settings


def main():
    """Start the material tracking backend server."""
    uvicorn.run("tracking.main:app", host=settings.HOST, port=settings.PORT, reload=True)


if __name__ == "__main__":
    main()
