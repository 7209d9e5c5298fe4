"""Pure domain layer: value enums, principals and roles, form registry, DTOs, clock."""
