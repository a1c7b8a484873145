# Portfolio document model, editing operations and builder session.
