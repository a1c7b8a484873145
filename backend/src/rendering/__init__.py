# Theme rendering for portfolio documents.
