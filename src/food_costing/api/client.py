"""
HTTP client for the backend REST API.

ApiClient wraps an httpx.Client. Every route is scoped to the active
organization of the AuthSession it was given; create and update routes for
recipes and products also carry the signed-in user's code for audit fields.

Error mapping for non-2xx responses:
    401, 403  -> AuthenticationError
    404       -> the matching NotFoundError subclass
    400, 422  -> ValidationError
    otherwise -> ApiError

A 204 response returns None.

Usage:
    session = AuthSession()
    with ApiClient(session) as client:
        client.login("owner@example.com", "secret")
        items = client.list_items()
"""

import logging
from typing import Any, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from food_costing.api import schemas
from food_costing.api.session import AuthOrganization, AuthSession, AuthUser
from food_costing.services.exceptions import (
    ApiError,
    AuthenticationError,
    EmployeeNotFound,
    ItemNotFound,
    NotFoundError,
    ProductNotFound,
    RecipeNotFound,
    ValidationError,
)
from food_costing.services.logging_utils import get_service_logger, log_operation
from food_costing.utils.config import get_config

logger = get_service_logger(__name__)

Identifier = Union[int, str]
Model = TypeVar("Model", bound=BaseModel)


class ApiClient:
    """
    Synchronous client for the items, recipes, products, employees and auth
    routes.

    Args:
        session: AuthSession holding the bearer token (a fresh, signed-out
            session when omitted)
        base_url: API root; defaults to Config.api_url
        timeout: Seconds per request; defaults to Config.api_timeout
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        session: Optional[AuthSession] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        config = get_config()
        self.session = session if session is not None else AuthSession()
        self._http = httpx.Client(
            base_url=(base_url or config.api_url).rstrip("/"),
            timeout=timeout if timeout is not None else config.api_timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _org(self) -> Identifier:
        if not self.session.is_authenticated or self.session.org_id is None:
            raise AuthenticationError(None, "Not signed in to an organization")
        return self.session.org_id

    def _user_code(self) -> Identifier:
        if self.session.user_code is None:
            raise AuthenticationError(None, "Not signed in")
        return self.session.user_code

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"API Error: {response.status_code}"

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[BaseModel] = None,
        auth: bool = True,
        not_found: Optional[NotFoundError] = None,
    ) -> Any:
        headers = {}
        if auth:
            if not self.session.is_authenticated:
                raise AuthenticationError(None, "Not signed in")
            headers["Authorization"] = f"Bearer {self.session.token}"

        body = None
        if payload is not None:
            body = payload.model_dump(mode="json", by_alias=True, exclude_none=True)

        try:
            response = self._http.request(method, path, json=body, headers=headers)
        except httpx.HTTPError as e:
            log_operation(
                logger,
                operation="api_request",
                outcome="transport_error",
                level=logging.WARNING,
                method=method,
                path=path,
                error=str(e),
            )
            raise ApiError(None, str(e)) from e

        if response.status_code == 204:
            return None

        if response.is_error:
            message = self._error_message(response)
            log_operation(
                logger,
                operation="api_request",
                outcome="error",
                level=logging.WARNING,
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            status = response.status_code
            if status in (401, 403):
                raise AuthenticationError(status, message)
            if status == 404:
                raise not_found if not_found is not None else NotFoundError(path)
            if status in (400, 422):
                raise ValidationError([message])
            raise ApiError(status, message)

        log_operation(
            logger,
            operation="api_request",
            outcome="success",
            level=logging.DEBUG,
            method=method,
            path=path,
            status_code=response.status_code,
        )
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _parse(model: Type[Model], data: Any) -> Model:
        try:
            return model.model_validate(data)
        except SchemaError as e:
            raise ApiError(None, f"Unexpected response for {model.__name__}: {e}") from e

    @classmethod
    def _parse_list(cls, model: Type[Model], data: Any) -> List[Model]:
        if not isinstance(data, list):
            raise ApiError(None, f"Expected a list of {model.__name__}")
        return [cls._parse(model, row) for row in data]

    @staticmethod
    def _payload(model: Type[Model], data: Union[Model, dict]) -> Model:
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except SchemaError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ValidationError(errors) from e

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _start_session(self, data: Any) -> AuthSession:
        auth = self._parse(schemas.AuthResponse, data)
        self.session.token = auth.token
        self.session.user = AuthUser(
            id=auth.user.id, email=auth.user.email, full_name=auth.user.full_name
        )
        self.session.organization = AuthOrganization(
            id=auth.organization.id, name=auth.organization.name
        )
        log_operation(
            logger,
            operation="login",
            outcome="success",
            user_id=auth.user.id,
            org_id=auth.organization.id,
        )
        return self.session

    def login(self, email: str, password: str) -> AuthSession:
        """Sign in and store the token on this client's session."""
        payload = schemas.LoginRequest(email=email, password=password)
        return self._start_session(self._request("POST", "/auth/login", payload, auth=False))

    def register_owner(
        self, email: str, password: str, full_name: str, organization_name: str
    ) -> AuthSession:
        """Create an organization with its owner account and sign in as that owner."""
        payload = schemas.RegisterOwnerRequest(
            email=email,
            password=password,
            full_name=full_name,
            organization_name=organization_name,
        )
        data = self._request("POST", "/auth/register-owner", payload, auth=False)
        return self._start_session(data)

    def me(self) -> schemas.MeResponse:
        return self._parse(schemas.MeResponse, self._request("GET", "/auth/me"))

    def logout(self) -> None:
        self.session.clear()

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(self) -> List[schemas.ItemDetail]:
        data = self._request("GET", f"/items/{self._org()}/items/get")
        return self._parse_list(schemas.ItemDetail, data)

    def get_item(self, item_id: Identifier) -> schemas.ItemRecord:
        data = self._request(
            "GET",
            f"/items/{self._org()}/items/{item_id}/get_by_id",
            not_found=ItemNotFound(item_id),
        )
        return self._parse(schemas.ItemRecord, data)

    def create_item(self, item: Union[schemas.ItemWrite, dict]) -> Any:
        payload = self._payload(schemas.ItemWrite, item)
        return self._request("POST", f"/items/{self._org()}/items/create", payload)

    def update_item(self, item_id: Identifier, item: Union[schemas.ItemWrite, dict]) -> Any:
        payload = self._payload(schemas.ItemWrite, item)
        return self._request(
            "PATCH",
            f"/items/{self._org()}/items/{item_id}/update",
            payload,
            not_found=ItemNotFound(item_id),
        )

    def delete_item(self, item_id: Identifier) -> Any:
        return self._request(
            "DELETE",
            f"/items/{self._org()}/items/{item_id}/delete",
            not_found=ItemNotFound(item_id),
        )

    def list_units(self) -> List[schemas.UnitOut]:
        return self._parse_list(schemas.UnitOut, self._request("GET", "/items/units"))

    def list_categories(self) -> List[schemas.CategoryOut]:
        data = self._request("GET", f"/items/{self._org()}/categories")
        return self._parse_list(schemas.CategoryOut, data)

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def list_recipes(self) -> List[schemas.RecipeDetail]:
        data = self._request("GET", f"/recipes/{self._org()}/recipes/return_list")
        return self._parse_list(schemas.RecipeDetail, data)

    def get_recipe(self, recipe_id: Identifier) -> schemas.RecipeDetail:
        data = self._request(
            "GET",
            f"/recipes/{self._org()}/recipes/{recipe_id}/return_single_recipe",
            not_found=RecipeNotFound(recipe_id),
        )
        return self._parse(schemas.RecipeDetail, data)

    def create_recipe(self, recipe: Union[schemas.RecipeWrite, dict]) -> Any:
        payload = self._payload(schemas.RecipeWrite, recipe)
        return self._request(
            "POST", f"/recipes/{self._org()}/{self._user_code()}/recipes/create", payload
        )

    def update_recipe(
        self, recipe_id: Identifier, recipe: Union[schemas.RecipeWrite, dict]
    ) -> Any:
        payload = self._payload(schemas.RecipeWrite, recipe)
        return self._request(
            "PATCH",
            f"/recipes/{self._org()}/{self._user_code()}/recipes/{recipe_id}/update_recipe",
            payload,
            not_found=RecipeNotFound(recipe_id),
        )

    def delete_recipe(self, recipe_id: Identifier) -> Any:
        return self._request(
            "DELETE",
            f"/recipes/{self._org()}/recipes/{recipe_id}/delete_recipe",
            not_found=RecipeNotFound(recipe_id),
        )

    def get_recipe_items(self, recipe_id: Identifier) -> List[schemas.RecipeItemDetail]:
        data = self._request(
            "GET",
            f"/recipes/{self._org()}/recipes/{recipe_id}/items",
            not_found=RecipeNotFound(recipe_id),
        )
        return self._parse_list(schemas.RecipeItemDetail, data)

    def upsert_recipe_item(
        self,
        recipe_id: Identifier,
        item_id: Identifier,
        line: Union[schemas.RecipeItemWrite, dict],
    ) -> Any:
        payload = self._payload(schemas.RecipeItemWrite, line)
        return self._request(
            "PUT",
            f"/recipes/{self._org()}/recipes/{recipe_id}/items/{item_id}/update_recipe_item",
            payload,
            not_found=RecipeNotFound(recipe_id),
        )

    def delete_recipe_item(self, recipe_id: Identifier, item_id: Identifier) -> Any:
        return self._request(
            "DELETE",
            f"/recipes/{self._org()}/recipes/{recipe_id}/items/{item_id}/delete_recipe_item",
            not_found=RecipeNotFound(recipe_id),
        )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self) -> List[schemas.ProductSummary]:
        data = self._request("GET", f"/products/{self._org()}/return_product_list")
        return self._parse_list(schemas.ProductSummary, data)

    def get_product(self, product_id: Identifier) -> schemas.ProductDetail:
        data = self._request(
            "GET",
            f"/products/{self._org()}/products/{product_id}/return_single_product",
            not_found=ProductNotFound(product_id),
        )
        return self._parse(schemas.ProductDetail, data)

    def create_product(self, product: Union[schemas.ProductWrite, dict]) -> Any:
        payload = self._payload(schemas.ProductWrite, product)
        if not payload.recipes and not payload.items:
            raise ValidationError(["A product needs at least one recipe or item"])
        return self._request(
            "POST", f"/products/{self._org()}/{self._user_code()}/create_product", payload
        )

    def update_product(
        self, product_id: Identifier, product: Union[schemas.ProductUpdate, dict]
    ) -> Any:
        payload = self._payload(schemas.ProductUpdate, product)
        return self._request(
            "PATCH",
            f"/products/{self._org()}/products/{product_id}/update_product",
            payload,
            not_found=ProductNotFound(product_id),
        )

    def delete_product(self, product_id: Identifier) -> Any:
        return self._request(
            "DELETE",
            f"/products/{self._org()}/products/{product_id}/delete_product",
            not_found=ProductNotFound(product_id),
        )

    def get_product_recipes(self, product_id: Identifier) -> List[schemas.ProductRecipeRef]:
        data = self._request(
            "GET",
            f"/products/{self._org()}/products/{product_id}/return_product_recipe",
            not_found=ProductNotFound(product_id),
        )
        return self._parse_list(schemas.ProductRecipeRef, data)

    def upsert_product_recipe(
        self,
        product_id: Identifier,
        recipe_id: Identifier,
        usage: Union[schemas.UsageWrite, dict],
    ) -> Any:
        payload = self._payload(schemas.UsageWrite, usage)
        return self._request(
            "PUT",
            f"/products/{self._org()}/products/{product_id}/recipes/{recipe_id}"
            f"/update_product_recipe",
            payload,
            not_found=ProductNotFound(product_id),
        )

    def delete_product_recipe(self, product_id: Identifier, recipe_id: Identifier) -> Any:
        return self._request(
            "DELETE",
            f"/products/{self._org()}/products/{product_id}/recipes/{recipe_id}"
            f"/delete_product_recipe",
            not_found=ProductNotFound(product_id),
        )

    def get_product_items(self, product_id: Identifier) -> List[schemas.ProductItemRef]:
        data = self._request(
            "GET",
            f"/products/{self._org()}/products/{product_id}/items",
            not_found=ProductNotFound(product_id),
        )
        return self._parse_list(schemas.ProductItemRef, data)

    def upsert_product_item(
        self,
        product_id: Identifier,
        item_id: Identifier,
        usage: Union[schemas.UsageWrite, dict],
    ) -> Any:
        payload = self._payload(schemas.UsageWrite, usage)
        return self._request(
            "PUT",
            f"/products/{self._org()}/products/{product_id}/items/{item_id}/update_product_item",
            payload,
            not_found=ProductNotFound(product_id),
        )

    def delete_product_item(self, product_id: Identifier, item_id: Identifier) -> Any:
        return self._request(
            "DELETE",
            f"/products/{self._org()}/products/{product_id}/items/{item_id}/delete_product_item",
            not_found=ProductNotFound(product_id),
        )

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    def list_employees(self) -> List[schemas.EmployeeOut]:
        data = self._request("GET", f"/employees/{self._org()}/return_list")
        return self._parse_list(schemas.EmployeeOut, data)

    def get_employee(self, employee_id: Identifier) -> schemas.EmployeeOut:
        data = self._request(
            "GET",
            f"/employees/{self._org()}/{employee_id}/return_single_employee",
            not_found=EmployeeNotFound(employee_id),
        )
        return self._parse(schemas.EmployeeOut, data)

    def create_employee(self, employee: Union[schemas.EmployeeWrite, dict]) -> Any:
        payload = self._payload(schemas.EmployeeWrite, employee)
        return self._request("POST", f"/employees/{self._org()}/create", payload)

    def update_employee(
        self, employee_id: Identifier, employee: Union[schemas.EmployeeUpdate, dict]
    ) -> Any:
        payload = self._payload(schemas.EmployeeUpdate, employee)
        return self._request(
            "PATCH",
            f"/employees/{self._org()}/{employee_id}/update_employee",
            payload,
            not_found=EmployeeNotFound(employee_id),
        )

    def delete_employee(self, employee_id: Identifier) -> Any:
        return self._request(
            "DELETE",
            f"/employees/{self._org()}/{employee_id}/delete_employee",
            not_found=EmployeeNotFound(employee_id),
        )
