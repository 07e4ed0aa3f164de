"""Client-side collection cache and optimistic sync for a Pokémon TCG tracker."""
