"""Pure game rules: definitions, entities and resolvers."""
