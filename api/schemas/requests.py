from pydantic import BaseModel, Field


class CacheSpanRequest(BaseModel):
	seconds: float = Field(..., gt=0, description='New cache span in seconds')

	class ConfigDict:
		json_schema_extra = {'example': {'seconds': 900}}
