from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum
from fastapi.responses import HTMLResponse
from fastapi import Request
from config import ENVIRONMENT, PUBLIC_SITE_URL
import logging

from routers.auth.auth import router as auth_router
from routers.listings.listings import router as listings_router
from routers.vendors.vendors import router as vendors_router
from routers.materials.materials import router as materials_router
from routers.history.history import router as history_router
from routers.practice.practice import router as practice_router
from routers.questions.questions import router as questions_router
from routers.study.study import router as study_router
from routers.delivery.delivery import router as delivery_router
from routers.admin.admin import router as admin_router

IS_PRODUCTION = ENVIRONMENT == "prod"

logging.basicConfig(
    level=logging.INFO if IS_PRODUCTION else logging.DEBUG,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Jabumarket API",
    description="Campus marketplace API: listings, vendors, delivery riders, study materials, practice quizzes, Q&A and moderation.",
    version="1.0.0",
    root_path="/Prod" if IS_PRODUCTION else "",
    docs_url="/apidocs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    servers=[
        {"url": "https://your-aws-api.execute-api.region.amazonaws.com/Prod", "description": "Production Server"},
        {"url": "http://localhost:8000", "description": "Local Development Server"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(vendors_router)
app.include_router(materials_router)
app.include_router(history_router)
app.include_router(practice_router)
app.include_router(questions_router)
app.include_router(study_router)
app.include_router(delivery_router)
app.include_router(admin_router)


@app.get("/docs", include_in_schema=False)
async def api_documentation(request: Request):
    openapi_url = "/Prod/openapi.json" if IS_PRODUCTION else "/openapi.json"

    return HTMLResponse(
        f"""
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1, shrink-to-fit=no">
    <title>Jabumarket API DOCS</title>

    <script src="https://unpkg.com/@stoplight/elements/web-components.min.js"></script>
    <link rel="stylesheet" href="https://unpkg.com/@stoplight/elements/styles.min.css">
  </head>
  <body>

    <elements-api
      apiDescriptionUrl="{openapi_url}"
      router="hash"
      theme="dark"
    />

  </body>
</html>"""
    )


@app.get("/", response_class=HTMLResponse)
def home():
    """Landing page with links to the API docs"""
    return f"""
    <html>
      <head>
        <title>Jabumarket API</title>
        <style>
          body {{ font-family: Arial, sans-serif; margin: 40px; background-color: #f8f9fa; }}
          h1 {{ color: #333; }}
          ul {{ list-style-type: none; padding: 0; }}
          li {{ margin: 10px 0; }}
          a {{ color: #0066cc; text-decoration: none; }}
          a:hover {{ text-decoration: underline; }}
          hr {{ margin: 20px 0; }}
        </style>
      </head>
      <body>
        <h1>Welcome to Jabumarket API</h1>
        <hr>
        <ul>
          <li><a href="/docs">Spotlight API Documentation</a></li>
          <li><a href="/redoc">Redoc API Documentation</a></li>
          <li><a href="/apidocs">Swagger API Documentation</a></li>
          <li><a href="/openapi.json">OpenAPI Specification</a></li>
          <hr>
          <li><a href="{PUBLIC_SITE_URL}">Jabumarket</a></li>
        </ul>
      </body>
    </html>
    """


handler = Mangum(app)
