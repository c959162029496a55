"""React-query hooks generated for backend endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .params import is_primitive_type

__all__ = ["HookParam", "Hook"]

_AUTH_HEADER = "'Authorization': `Bearer ${auth.accessToken}`,\n        "
_BODY = "body: JSON.stringify(bodyParams),\n"
_QUERY_STRING = "?${new URLSearchParams(queryParams).toString()}"


@dataclass(frozen=True)
class HookParam:
    """One argument of a generated hook."""

    name: str
    arg_type: str


@dataclass
class Hook:
    """A react hook using react-query to fetch from, or mutate, an endpoint.

    ``endpoint_verb`` is an HTTP method name such as ``"get"`` or ``"POST"``.
    """

    hook_name: str
    endpoint_url: str
    endpoint_verb: str
    uses_auth: bool
    return_type: str
    is_mutation: bool
    query_params: list[HookParam] = field(default_factory=list)
    body_params: list[HookParam] = field(default_factory=list)
    path_params: list[HookParam] = field(default_factory=list)
    generated_from: Path | None = None

    def args_string(self) -> str:
        """The hook's argument list: path, then query, then body parameters."""
        params = [*self.path_params, *self.query_params, *self.body_params]
        return ", ".join(f"{p.name}: {p.arg_type}" for p in params)

    def _spread(self, param: HookParam, always_wrap: bool = False) -> str:
        primitive = always_wrap or is_primitive_type(param.arg_type)
        if self.is_mutation:
            value = f"{param.name}: params.{param.name}" if primitive else f"params.{param.name}"
        else:
            value = param.name
        return f"{{ {value} }}" if primitive else value

    def vars_string(self) -> str:
        """Variable declarations placed at the top of the hook body."""
        lines: list[str] = []
        if self.uses_auth:
            lines.append("  const auth = useAuth()\n")
        if self.is_mutation:
            lines.append("  const queryClient = useQueryClient()\n")
        if self.query_params:
            lines.append(
                "  // we use JSON.parse(JSON.stringify()) to remove nested undefined values\n"
            )
            spread = ", ".join(self._spread(p) for p in self.query_params)
            lines.append(
                "  const queryParams: Record<string, any> = "
                f"JSON.parse(JSON.stringify(Object.assign({{}}, {spread})))\n"
            )
        if self.path_params:
            spread = ", ".join(self._spread(p, always_wrap=True) for p in self.path_params)
            lines.append(f"  const pathParams = Object.assign({{}}, {spread})\n")
        if self.body_params:
            spread = ", ".join(self._spread(p) for p in self.body_params)
            lines.append(f"  const bodyParams = Object.assign({{}}, {spread})\n")
        return "".join(lines)

    def query_key(self) -> str:
        """The react-query key: URL segments, then query and body parameters."""
        prefix = "params." if self.is_mutation else ""
        param_keys = [prefix + p.name for p in (*self.query_params, *self.body_params)]

        base: list[str] = []
        for token in self.endpoint_url.lstrip("/").split("/"):
            # `{name}` segments are path parameters.
            if len(token) >= 2 and token.startswith("{") and token.endswith("}"):
                base.append(f"pathParams.{token[1:-1]}")
            else:
                base.append(f'"{token}"')
        return ", ".join(base + param_keys)

    def _fetch_block(self) -> str:
        endpoint_url = self.endpoint_url.replace("{", "${pathParams.")
        query_string = _QUERY_STRING if self.query_params else ""
        query_body = _BODY if self.body_params else ""
        auth_header = _AUTH_HEADER if self.uses_auth else ""
        verb = str(self.endpoint_verb).upper()
        return (
            f"    async () => await (await fetch(`{endpoint_url}{query_string}`, {{\n"
            f"      method: '{verb}',\n"
            f"      {query_body}headers: {{\n"
            f"        {auth_header}'Content-Type': 'application/json',\n"
            f"      }},\n"
            f"    }})).json(),\n"
        )

    def render(self) -> str:
        """The TypeScript source of the hook."""
        hook_args = self.args_string()
        return_type = self.return_type.strip('"')
        variables = self.vars_string()
        query_key = self.query_key()
        fetch = self._fetch_block()

        if self.is_mutation:
            return (
                f"export const {self.hook_name} = (params: {{{hook_args}}}) => {{\n"
                f"{variables}  return useMutation<{return_type}>(\n"
                f"{fetch}"
                f"    {{\n"
                f"      mutationKey: [{query_key}],\n"
                f"      onSuccess: () => queryClient.invalidateQueries([{query_key}]),\n"
                f"    }}\n"
                f"  )\n"
                f"}}"
            )

        args_comma = ", " if hook_args else ""
        return (
            f"export const {self.hook_name} = ({hook_args}{args_comma}"
            f"options?: Omit<UseQueryOptions<{return_type}>, 'queryKey' | 'queryFn'>) => {{\n"
            f"{variables}  return useQuery<{return_type}>(\n"
            f"    [{query_key}],\n"
            f"{fetch}"
            f"    options\n"
            f"  )\n"
            f"}}"
        )

    def __str__(self) -> str:
        return self.render()