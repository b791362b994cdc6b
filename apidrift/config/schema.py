"""JSON Schema for apidrift configuration files."""

_AUTHENTICATION = {
    "type": ["object", "null"],
    "properties": {
        "tokenUrl": {"type": ["string", "null"]},
        "clientId": {"type": ["string", "null"]},
        "clientSecret": {"type": ["string", "null"]},
    },
}

_OPERATION = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "path": {"type": ["string", "null"]},
        "methods": {"type": "array", "items": {"type": "string"}},
        "headers": {
            "type": ["object", "null"],
            "additionalProperties": {"type": ["string", "number", "boolean"]},
        },
        "payloadTemplatePath": {"type": ["string", "null"]},
    },
}

_API = {
    "type": "object",
    "required": ["baseUrl", "operations"],
    "properties": {
        "baseUrl": {"type": "string"},
        "authentication": _AUTHENTICATION,
        "operations": {"type": "array", "minItems": 1, "items": _OPERATION},
    },
}

_API_PAIR = {
    "type": ["object", "null"],
    "properties": {"api1": _API, "api2": _API},
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["testType"],
    "properties": {
        "testType": {"type": "string", "pattern": "^(?i:rest|soap)$"},
        "rest": _API_PAIR,
        "soap": _API_PAIR,
        "maxIterations": {"type": "integer", "minimum": 1},
        "tokens": {
            "type": ["object", "null"],
            "additionalProperties": {
                "type": "array",
                "minItems": 1,
                "items": {"type": ["string", "number", "boolean"]},
            },
        },
        "iterationController": {"type": ["string", "null"]},
        "comparisonMode": {"type": ["string", "null"], "pattern": "^(?i:live|baseline)$"},
        "baseline": {
            "type": ["object", "null"],
            "properties": {
                "operation": {"type": ["string", "null"], "pattern": "^(?i:capture|compare)$"},
                "storageDir": {"type": ["string", "null"]},
                "serviceName": {"type": ["string", "null"]},
                "description": {"type": ["string", "null"]},
                "tags": {"type": ["array", "null"], "items": {"type": "string"}},
                "compareDate": {"type": ["string", "null"], "pattern": "^[0-9]{8}$"},
                "compareRunId": {"type": ["string", "null"], "pattern": "^run-[0-9]+$"},
            },
        },
    },
}
